"""Repository-level integrity checks."""

from __future__ import annotations

import re
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
CONFLICT_PATTERN = re.compile(r"^(<<<<<<<|=======|>>>>>>>)( |$)", re.MULTILINE)
IMPORT_PATTERN = re.compile(r"^(?:from|import) ([a-zA-Z_][\w]*)", re.MULTILINE)
IGNORED_PARTS = {".git", "__pycache__", ".mypy_cache", ".pytest_cache", ".venv"}
SOURCE_PACKAGES = ("app", "filmazia")

# Import names whose distribution is published under a different name.
DISTRIBUTION_NAMES = {
    "pydantic_settings": "pydantic-settings",
}


def _repository_files():
    for path in REPO_ROOT.rglob("*"):
        if not path.is_file():
            continue
        if any(part in IGNORED_PARTS for part in path.parts):
            continue
        yield path


def test_repository_has_no_merge_conflict_markers() -> None:
    offending_files: list[Path] = []

    for path in _repository_files():
        contents = path.read_text(encoding="utf-8", errors="ignore")
        if CONFLICT_PATTERN.search(contents):
            offending_files.append(path.relative_to(REPO_ROOT))

    assert not offending_files, (
        "The following files still contain git conflict markers: "
        + ", ".join(str(path) for path in offending_files)
    )


def test_third_party_imports_are_declared() -> None:
    """Every library imported by the packages must appear in pyproject.toml."""

    pyproject = (REPO_ROOT / "pyproject.toml").read_text(encoding="utf-8")
    dependencies_block = pyproject.split("dependencies = [", 1)[1].split("]", 1)[0]
    declared = {
        re.split(r"[\[<>=]", entry.strip().strip('",'))[0].lower()
        for entry in dependencies_block.splitlines()
        if entry.strip()
    }

    imported: set[str] = set()
    for package in SOURCE_PACKAGES:
        for path in (REPO_ROOT / package).rglob("*.py"):
            imported.update(IMPORT_PATTERN.findall(path.read_text(encoding="utf-8")))

    third_party = {
        name
        for name in imported
        if name not in sys.stdlib_module_names
        and name not in SOURCE_PACKAGES
        and name != "__future__"
    }
    missing = sorted(
        name
        for name in third_party
        if DISTRIBUTION_NAMES.get(name, name).lower() not in declared
    )
    assert not missing, f"Undeclared dependencies: {', '.join(missing)}"
