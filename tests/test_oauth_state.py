"""Tests for signed OAuth state tokens."""
import base64
import json

import pytest

from conftest import STATE_SECRET, FrozenClock
from oauthbridge.core.exceptions import ConfigurationError
from oauthbridge.models.oauth_models import OAuthState
from oauthbridge.services.oauth.state import StateCodec


@pytest.fixture
def state():
    return OAuthState(
        user_id="u1",
        organization_id="org-9",
        integration_id=7,
        return_url="https://app.example.com/settings/integrations",
        nonce="n",
        timestamp=1736942400000,
    )


@pytest.fixture
def codec(clock):
    return StateCodec(STATE_SECRET, clock=clock)


def test_round_trip_returns_equal_state(codec, state):
    encoded = codec.encode_state(state)
    assert codec.decode_state(encoded) == state


def test_round_trip_minimal_state(codec):
    minimal = OAuthState(user_id="u2", integration_id="slack-1", nonce="abc", timestamp=0)
    decoded = codec.decode_state(codec.encode_state(minimal))
    assert decoded.model_dump() == minimal.model_dump()
    assert decoded.organization_id is None
    assert decoded.return_url is None


def test_encoded_state_is_url_safe(codec, state):
    encoded = codec.encode_state(state)
    assert set(encoded) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_=")


def test_same_state_encodes_differently_each_time(codec, state):
    assert codec.encode_state(state) != codec.encode_state(state)


def test_any_single_character_change_is_rejected(codec, state):
    encoded = codec.encode_state(state)
    for i, ch in enumerate(encoded):
        flipped = chr(ord(ch) ^ 0x01)
        tampered = encoded[:i] + flipped + encoded[i + 1:]
        assert codec.decode_state(tampered) is None, f"tampering at position {i} was not detected"


def test_modified_payload_with_unchanged_signature_is_rejected(codec, state):
    envelope = json.loads(base64.urlsafe_b64decode(codec.encode_state(state)))
    data = json.loads(envelope["data"])
    data["user_id"] = "attacker"
    envelope["data"] = json.dumps(data, separators=(",", ":"), sort_keys=True)
    forged = base64.urlsafe_b64encode(json.dumps(envelope).encode()).decode()
    assert codec.decode_state(forged) is None


def test_state_signed_with_other_secret_is_rejected(clock, state):
    other = StateCodec("a-different-secret", clock=clock)
    ours = StateCodec(STATE_SECRET, clock=clock)
    assert ours.decode_state(other.encode_state(state)) is None


def test_state_older_than_window_is_rejected(state):
    clock = FrozenClock()
    codec = StateCodec(STATE_SECRET, clock=clock)
    encoded = codec.encode_state(state)
    clock.advance(11 * 60)
    assert codec.decode_state(encoded) is None


def test_state_within_window_is_accepted(state):
    clock = FrozenClock()
    codec = StateCodec(STATE_SECRET, clock=clock)
    encoded = codec.encode_state(state)
    clock.advance(9 * 60)
    assert codec.decode_state(encoded) == state


def test_state_exactly_at_window_edge_is_accepted(state):
    clock = FrozenClock()
    codec = StateCodec(STATE_SECRET, clock=clock)
    encoded = codec.encode_state(state)
    clock.advance(600)
    assert codec.decode_state(encoded) == state


def test_custom_window(state):
    clock = FrozenClock()
    codec = StateCodec(STATE_SECRET, max_age_seconds=60, clock=clock)
    encoded = codec.encode_state(state)
    clock.advance(61)
    assert codec.decode_state(encoded) is None


@pytest.mark.parametrize(
    "garbage",
    [
        "",
        "not base64 at all!",
        "e30=",  # {}
        base64.urlsafe_b64encode(b"[1, 2, 3]").decode(),
        base64.urlsafe_b64encode(b"\xff\xfe\x00").decode(),
        base64.urlsafe_b64encode(
            json.dumps({"data": "{}", "timestamp": "now", "nonce": "n", "signature": "s"}).encode()
        ).decode(),
        "ünïcode",
    ],
)
def test_malformed_input_returns_none(codec, garbage):
    assert codec.decode_state(garbage) is None


def test_non_string_input_returns_none(codec):
    assert codec.decode_state(None) is None  # type: ignore[arg-type]
    assert codec.decode_state(12345) is None  # type: ignore[arg-type]


def test_rejection_logs_do_not_contain_signature(codec, state, caplog):
    encoded = codec.encode_state(state)
    envelope = json.loads(base64.urlsafe_b64decode(encoded))
    envelope["signature"] = "0" * 64
    forged = base64.urlsafe_b64encode(
        json.dumps(envelope, separators=(",", ":"), sort_keys=True).encode()
    ).decode()

    with caplog.at_level("WARNING"):
        assert codec.decode_state(forged) is None

    real_signature = json.loads(base64.urlsafe_b64decode(encoded))["signature"]
    assert "signature mismatch" in caplog.text
    assert real_signature not in caplog.text


def test_verify_exposes_envelope_nonce(codec, state):
    verified = codec.verify(codec.encode_state(state))
    assert verified is not None
    assert verified.state == state
    assert verified.nonce and verified.nonce != state.nonce


@pytest.mark.parametrize("secret", [None, ""])
def test_missing_secret_is_configuration_error(secret):
    with pytest.raises(ConfigurationError, match="OAUTH_STATE_SECRET"):
        StateCodec(secret)
