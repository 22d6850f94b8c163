from datetime import datetime, timedelta, timezone

from app.utils import ensure_utc, generate_id, utcnow


def test_generate_id_is_base36():
    identifier = generate_id()
    assert len(identifier) == 13
    assert identifier.isalnum()
    assert identifier == identifier.lower()


def test_generate_id_is_random():
    assert len({generate_id() for _ in range(50)}) == 50


def test_ensure_utc_treats_naive_values_as_utc():
    naive = datetime(2024, 5, 1, 12, 30)
    assert ensure_utc(naive) == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def test_ensure_utc_converts_offsets():
    local = datetime(2024, 5, 1, 14, 30, tzinfo=timezone(timedelta(hours=2)))
    converted = ensure_utc(local)
    assert converted.tzinfo == timezone.utc
    assert converted.hour == 12


def test_utcnow_is_timezone_aware():
    assert utcnow().tzinfo is not None
