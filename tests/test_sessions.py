from __future__ import annotations

import json

import pytest

from voiceclip.errors import ServerMisconfigured
from voiceclip.schemas.cloud import PublicUser
from voiceclip.services.sessions import (
    SessionTokenService,
    base64url_decode,
    base64url_encode,
    parse_bearer,
)

USER = PublicUser(id="user-1", email="ada@example.com")


class FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_service(clock: FakeClock, ttl: int = 3600) -> SessionTokenService:
    return SessionTokenService("secret", ttl_seconds=ttl, clock=clock)


def test_token_round_trip_recovers_user_id() -> None:
    service = make_service(FakeClock(1_700_000_000))

    token = service.issue_token(USER)

    assert service.verify_token(token) == "user-1"


def test_token_payload_carries_standard_claims() -> None:
    service = make_service(FakeClock(1_700_000_000), ttl=60)

    header, body, _ = service.issue_token(USER).split(".")

    assert json.loads(base64url_decode(header)) == {"alg": "HS256", "typ": "JWT"}
    assert json.loads(base64url_decode(body)) == {
        "sub": "user-1",
        "email": "ada@example.com",
        "iat": 1_700_000_000,
        "exp": 1_700_000_060,
    }


def test_token_expires_after_ttl() -> None:
    clock = FakeClock(1_700_000_000)
    service = make_service(clock, ttl=60)
    token = service.issue_token(USER)

    clock.now += 60
    assert service.verify_token(token) == "user-1"

    clock.now += 1
    assert service.verify_token(token) is None


def test_altered_segments_are_rejected() -> None:
    service = make_service(FakeClock(1_700_000_000))
    header, body, signature = service.issue_token(USER).split(".")
    forged_body = base64url_encode(
        json.dumps({"sub": "admin", "exp": 9_999_999_999}).encode()
    )

    assert service.verify_token(f"{header}.{forged_body}.{signature}") is None
    assert service.verify_token(f"{header}.{body}.{signature[:-2]}xx") is None
    assert service.verify_token(f"{header}.{body}") is None
    assert service.verify_token("not-a-token") is None


def test_token_signed_with_other_secret_is_rejected() -> None:
    clock = FakeClock(1_700_000_000)
    other = SessionTokenService("other-secret", ttl_seconds=3600, clock=clock)

    assert make_service(clock).verify_token(other.issue_token(USER)) is None


def test_missing_secret_is_a_server_misconfiguration() -> None:
    service = SessionTokenService(None, ttl_seconds=3600)

    assert service.configured is False
    with pytest.raises(ServerMisconfigured):
        service.issue_token(USER)
    with pytest.raises(ServerMisconfigured):
        service.verify_token("a.b.c")


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("Bearer   ", None),
        ("Basic abc", None),
        (None, None),
        ("", None),
    ],
)
def test_parse_bearer(header, expected) -> None:
    assert parse_bearer(header) == expected
