from datetime import datetime, timedelta, timezone

import pytest

from lifehub.core.errors import ValidationError
from lifehub.utils.share_utils import build_share_link, parse_expiry, share_token, token_matches

NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.mark.parametrize("value", [None, "never", "Never", "", "  "])
def test_never_expires(value):
    assert parse_expiry(value, now=NOW) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("12h", NOW + timedelta(hours=12)),
        ("1d", NOW + timedelta(days=1)),
        ("7d", NOW + timedelta(days=7)),
        ("2w", NOW + timedelta(weeks=2)),
    ],
)
def test_relative_presets(value, expected):
    assert parse_expiry(value, now=NOW) == expected


def test_absolute_timestamps_become_naive_utc():
    assert parse_expiry("2024-06-01T10:00:00Z") == datetime(2024, 6, 1, 10, 0, 0)
    assert parse_expiry("2024-06-01T12:00:00+02:00") == datetime(2024, 6, 1, 10, 0, 0)
    aware = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert parse_expiry(aware) == datetime(2024, 6, 1, 10, 0, 0)


@pytest.mark.parametrize("value", ["soon", "0d", "-1d", "7y"])
def test_invalid_expiry(value):
    with pytest.raises(ValidationError):
        parse_expiry(value, now=NOW)


def test_token_is_stable_and_secret_bound():
    token = share_token("secret", "abc")
    assert token == share_token("secret", "abc")
    assert token != share_token("other-secret", "abc")
    assert len(share_token("secret", "abc", 16)) == 16

    assert token_matches("secret", "abc", token)
    assert not token_matches("secret", "abc", token[:-1])
    assert not token_matches("secret", "abd", token)
    assert not token_matches("secret", "abc", None)


def test_build_share_link():
    assert (
        build_share_link("http://host:8899/", "/api/v1", "abc", "tok")
        == "http://host:8899/api/v1/shared/abc?token=tok"
    )
