"""Tests for Slack request signature verification."""

import hashlib
import hmac

from catgpt.slack.signature import compute_signature, verify_signature

SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
BODY = "token=xyzz0WbapA4vBCDEFasx0q6G&team_id=T1DC2JH3J&command=%2Fweather"
TIMESTAMP = "1531420618"


def headers(signature: str, timestamp: str = TIMESTAMP) -> dict:
    return {"X-Slack-Signature": signature, "X-Slack-Request-Timestamp": timestamp}


def test_compute_signature_format():
    expected = hmac.new(SECRET.encode(), f"v0:{TIMESTAMP}:{BODY}".encode(), hashlib.sha256).hexdigest()
    assert compute_signature(TIMESTAMP, BODY, SECRET) == f"v0={expected}"


def test_valid_signature():
    assert verify_signature(headers(compute_signature(TIMESTAMP, BODY, SECRET)), BODY, SECRET)


def test_header_lookup_is_case_insensitive():
    sig = compute_signature(TIMESTAMP, BODY, SECRET)
    lowered = {"x-slack-signature": sig, "x-slack-request-timestamp": TIMESTAMP}
    assert verify_signature(lowered, BODY, SECRET)


def test_tampered_body():
    sig = compute_signature(TIMESTAMP, BODY, SECRET)
    assert not verify_signature(headers(sig), BODY + "&x=1", SECRET)


def test_wrong_secret():
    sig = compute_signature(TIMESTAMP, BODY, "other")
    assert not verify_signature(headers(sig), BODY, SECRET)


def test_timestamp_mismatch():
    sig = compute_signature(TIMESTAMP, BODY, SECRET)
    assert not verify_signature(headers(sig, "1531420619"), BODY, SECRET)


def test_missing_headers():
    assert not verify_signature({}, BODY, SECRET)
    assert not verify_signature({"X-Slack-Signature": "v0=abc"}, BODY, SECRET)


def test_empty_secret_rejects():
    sig = compute_signature(TIMESTAMP, BODY, "")
    assert not verify_signature(headers(sig), BODY, "")


def test_non_ascii_body():
    body = '{"event": {"text": "こんにちは"}}'
    assert verify_signature(headers(compute_signature(TIMESTAMP, body, SECRET)), body, SECRET)
