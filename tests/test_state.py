"""Tests for state tokens and nonces."""

import base64

import pytest

from drawbridge.auth.state import (
    LOGIN_NONCE_ACTION,
    HmacNonceManager,
    NonceManager,
    build_state,
    new_login_state,
    parse_state,
)


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_nonce_manager_is_abstract():
    with pytest.raises(TypeError):
        NonceManager()


# ==================== Nonces ====================


def test_nonce_verifies_once(nonces):
    nonce = nonces.create(LOGIN_NONCE_ACTION, "session-1")

    assert nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-1")
    assert not nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-1")


def test_nonces_are_unique(nonces):
    created = {nonces.create(LOGIN_NONCE_ACTION, "session-1") for _ in range(50)}
    assert len(created) == 50


def test_nonce_bound_to_session(nonces):
    nonce = nonces.create(LOGIN_NONCE_ACTION, "session-1")
    assert not nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-2")


def test_nonce_bound_to_action(nonces):
    nonce = nonces.create(LOGIN_NONCE_ACTION, "session-1")
    assert not nonces.verify(nonce, "other_action", "session-1")


def test_failed_verification_does_not_consume(nonces):
    nonce = nonces.create(LOGIN_NONCE_ACTION, "session-1")

    assert not nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-2")
    assert nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-1")


def test_nonce_from_other_secret_rejected():
    nonce = HmacNonceManager(secret="one").create(LOGIN_NONCE_ACTION, "s")
    assert not HmacNonceManager(secret="two").verify(nonce, LOGIN_NONCE_ACTION, "s")


def test_shared_secret_works_across_managers():
    nonce = HmacNonceManager(secret=b"shared").create(LOGIN_NONCE_ACTION, "s")
    assert HmacNonceManager(secret=b"shared").verify(nonce, LOGIN_NONCE_ACTION, "s")


@pytest.mark.parametrize("nonce", ["", "garbage", "a.b", "a.notanumber.c", "a.1.b.c", "aa.1.\u00e9"])
def test_malformed_nonce_rejected(nonces, nonce):
    assert not nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-1")


def test_tampered_nonce_rejected(nonces):
    nonce = nonces.create(LOGIN_NONCE_ACTION, "session-1")
    token, issued, mac = nonce.split(".")
    tampered = f"{token}.{issued}.{'0' if mac[0] != '0' else '1'}{mac[1:]}"

    assert not nonces.verify(tampered, LOGIN_NONCE_ACTION, "session-1")


def test_nonce_expires():
    clock = FakeClock()
    nonces = HmacNonceManager(secret="s", lifetime_seconds=86400, clock=clock)
    nonce = nonces.create(LOGIN_NONCE_ACTION, "session-1")

    clock.now += 86401

    assert not nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-1")


def test_nonce_valid_within_lifetime():
    clock = FakeClock()
    nonces = HmacNonceManager(secret="s", clock=clock)
    nonce = nonces.create(LOGIN_NONCE_ACTION, "session-1")

    clock.now += 86000

    assert nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-1")


def test_nonce_issued_in_future_rejected():
    clock = FakeClock()
    issuer = HmacNonceManager(secret="s", clock=lambda: clock.now + 3600)
    checker = HmacNonceManager(secret="s", clock=clock)

    nonce = issuer.create(LOGIN_NONCE_ACTION, "session-1")

    assert not checker.verify(nonce, LOGIN_NONCE_ACTION, "session-1")


def test_consumed_record_is_pruned():
    clock = FakeClock()
    nonces = HmacNonceManager(secret="s", lifetime_seconds=100, clock=clock)
    nonce = nonces.create(LOGIN_NONCE_ACTION, "session-1")
    assert nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-1")

    clock.now += 200
    other = nonces.create(LOGIN_NONCE_ACTION, "session-1")
    assert nonces.verify(other, LOGIN_NONCE_ACTION, "session-1")

    assert nonce not in nonces._consumed


# ==================== State tokens ====================


def test_build_state_format():
    state = build_state("abc.1.def", "https://example.com/page")
    nonce, encoded = state.split("|")

    assert nonce == "abc.1.def"
    assert base64.b64decode(encoded).decode() == "https://example.com/page"


def test_parse_state_round_trip():
    assert parse_state(build_state("n", "https://example.com/a?b=c")) == (
        "n",
        "https://example.com/a?b=c",
    )


def test_parse_state_without_target():
    assert parse_state("n|") == ("n", "")
    assert parse_state("n") == ("n", "")


def test_parse_state_restores_plus_from_space():
    target = "https://example.com/?qq=>>>"
    state = build_state("n", target)
    assert "+" in state

    assert parse_state(state.replace("+", " ")) == ("n", target)


def test_parse_state_bad_base64_gives_empty_target():
    assert parse_state("n|%%%not-base64") == ("n", "")


def test_new_login_state(nonces):
    state = new_login_state(nonces, "session-1", "https://example.com/page")
    nonce, target = parse_state(state)

    assert target == "https://example.com/page"
    assert nonces.verify(nonce, LOGIN_NONCE_ACTION, "session-1")
