from cinemana_cli.utils.expiry import (
    is_expiring_soon,
    minutes_until_expiry,
    parse_expiry_epoch,
)


def test_parse_expiry_epoch() -> None:
    assert parse_expiry_epoch("https://cdn/v.mp4?Expires=1700000000&Signature=x") == 1700000000
    assert parse_expiry_epoch("https://cdn/v.mp4?Signature=x") is None
    assert parse_expiry_epoch("https://cdn/v.mp4?Expires=soon") is None


def test_expiring_soon_threshold() -> None:
    now = 1_000_000
    assert is_expiring_soon(now + 5 * 60, 10, now=now)
    assert is_expiring_soon(now - 60, 10, now=now)
    assert not is_expiring_soon(now + 30 * 60, 10, now=now)
    assert not is_expiring_soon(None, 10, now=now)


def test_minutes_until_expiry_never_negative() -> None:
    assert minutes_until_expiry(1_000_000 + 300, now=1_000_000) == 5
    assert minutes_until_expiry(1_000_000 - 300, now=1_000_000) == 0
