"""Persistence and remote mirroring shared by the client stores."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable, Callable

import httpx
from pydantic import ValidationError

from .remote import FilmaziaAPIClient, FilmaziaAPIError

logger = logging.getLogger(__name__)

MirrorAction = Callable[[FilmaziaAPIClient], Awaitable[Any]]


class KeyValueStorage(ABC):
    """Where stores keep their JSON-compatible state between runs."""

    @abstractmethod
    def get(self, key: str) -> Any | None: ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """Keeps every key in a single JSON document on disk."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def get(self, key: str) -> Any | None:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable storage file %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)


class LocalFirstStore(ABC):
    """State container that mutates locally and mirrors to the server.

    Mutations update local state synchronously and persist it. When a
    signed-in :class:`FilmaziaAPIClient` is attached, the matching server
    call is queued afterwards; a failed mirror is logged at debug level and
    otherwise ignored.

    Mirror calls run one after another, in mutation order, on the running
    event loop. Mutations made while no loop is running are held until the
    next :meth:`flush`.
    """

    storage_key: str | None = None

    def __init__(self, storage: KeyValueStorage | None = None):
        self._storage = storage if storage is not None else MemoryStorage()
        self._remote: FilmaziaAPIClient | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._tail: asyncio.Task[None] | None = None
        self._deferred: list[tuple[str, FilmaziaAPIClient, MirrorAction]] = []
        if self.storage_key:
            self._restore(self._storage.get(self.storage_key))

    def connect(self, remote: FilmaziaAPIClient) -> None:
        self._remote = remote

    def disconnect(self) -> None:
        self._remote = None
        self._deferred.clear()

    @property
    def has_session(self) -> bool:
        return self._remote is not None and self._remote.authenticated

    async def flush(self) -> None:
        """Send held mirror calls and wait for every queued one to finish."""

        loop = asyncio.get_running_loop()
        deferred, self._deferred = self._deferred, []
        for description, remote, action in deferred:
            self._schedule(loop, description, remote, action)
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @abstractmethod
    def _restore(self, data: Any | None) -> None:
        """Load state previously written by :meth:`_snapshot`."""

    @abstractmethod
    def _snapshot(self) -> Any: ...

    def _persist(self) -> None:
        if self.storage_key:
            self._storage.set(self.storage_key, self._snapshot())

    def _mirror(self, description: str, action: MirrorAction) -> None:
        if not self.has_session:
            return
        remote = self._remote
        assert remote is not None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deferred.append((description, remote, action))
            return
        self._schedule(loop, description, remote, action)

    def _schedule(
        self,
        loop: asyncio.AbstractEventLoop,
        description: str,
        remote: FilmaziaAPIClient,
        action: MirrorAction,
    ) -> None:
        previous = self._tail
        if previous is not None and (previous.done() or previous.get_loop() is not loop):
            previous = None

        async def _run() -> None:
            if previous is not None:
                await asyncio.wait([previous])
            try:
                await action(remote)
            except (FilmaziaAPIError, ValidationError, httpx.HTTPError, OSError) as exc:
                logger.debug("Could not mirror %s: %s", description, exc)

        task = loop.create_task(_run())
        self._tail = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def title_of(item: Any) -> str:
    """Display title of a movie (``title``) or show (``name``)."""

    if isinstance(item, dict):
        value = item.get("title") or item.get("name")
    else:
        value = getattr(item, "title", None) or getattr(item, "name", None)
    return str(value or "Unknown")


def field_of(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)
