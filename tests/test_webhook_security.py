"""Tests for Mercado Pago signature verification."""

import time

from app.webhook_security import (
    SignatureCheck,
    build_manifest,
    compute_hmac_sha256,
    create_webhook_signature,
    parse_signature_header,
    verify_mercadopago_signature,
    verify_timestamp,
)

SECRET = "test-webhook-secret"


class TestManifest:
    def test_format(self):
        assert build_manifest("987", "req-1", "1700000000") == "id:987;request-id:req-1;ts:1700000000;"

    def test_signature_is_deterministic_lowercase_hex(self):
        first = compute_hmac_sha256(SECRET, b"id:987;request-id:req-1;ts:1;")
        second = compute_hmac_sha256(SECRET, b"id:987;request-id:req-1;ts:1;")
        assert first == second
        assert first == first.lower()
        assert len(first) == 64


class TestParseSignatureHeader:
    def test_standard(self):
        assert parse_signature_header("ts=1700,v1=abc") == ("1700", "abc")

    def test_whitespace_and_order(self):
        assert parse_signature_header(" v1 = abc , ts = 1700 ") == ("1700", "abc")

    def test_missing_part(self):
        assert parse_signature_header("ts=1700") == (None, None)
        assert parse_signature_header("") == (None, None)
        assert parse_signature_header(None) == (None, None)
        assert parse_signature_header("garbage") == (None, None)


class TestVerifySignature:
    """Outcomes of verify_mercadopago_signature."""

    def test_verified(self):
        header = create_webhook_signature(SECRET, "987", "req-1", ts="1700000000")
        assert verify_mercadopago_signature("987", "req-1", header, SECRET) is SignatureCheck.VERIFIED

    def test_uppercase_digest_accepted(self):
        ts, v1 = parse_signature_header(create_webhook_signature(SECRET, "987", "req-1", ts="1"))
        header = f"ts={ts},v1={v1.upper()}"
        assert verify_mercadopago_signature("987", "req-1", header, SECRET) is SignatureCheck.VERIFIED

    def test_wrong_secret_is_invalid(self):
        header = create_webhook_signature("other-secret", "987", "req-1", ts="1")
        assert verify_mercadopago_signature("987", "req-1", header, SECRET) is SignatureCheck.INVALID

    def test_different_id_is_invalid(self):
        header = create_webhook_signature(SECRET, "987", "req-1", ts="1")
        assert verify_mercadopago_signature("988", "req-1", header, SECRET) is SignatureCheck.INVALID

    def test_missing_header_is_unverified(self):
        assert verify_mercadopago_signature("987", "req-1", None, SECRET) is SignatureCheck.UNVERIFIED

    def test_missing_request_id_is_unverified(self):
        header = create_webhook_signature(SECRET, "987", "req-1", ts="1")
        assert verify_mercadopago_signature("987", None, header, SECRET) is SignatureCheck.UNVERIFIED

    def test_missing_secret_is_unverified(self):
        header = create_webhook_signature(SECRET, "987", "req-1", ts="1")
        assert verify_mercadopago_signature("987", "req-1", header, None) is SignatureCheck.UNVERIFIED

    def test_stale_signature_is_invalid(self):
        header = create_webhook_signature(SECRET, "987", "req-1", ts="1000")
        assert verify_mercadopago_signature("987", "req-1", header, SECRET, max_age=300) is SignatureCheck.INVALID

    def test_fresh_signature_with_freshness_check(self):
        header = create_webhook_signature(SECRET, "987", "req-1")
        assert verify_mercadopago_signature("987", "req-1", header, SECRET, max_age=300) is SignatureCheck.VERIFIED


class TestVerifyTimestamp:
    def test_disabled(self):
        assert verify_timestamp(None, 0)

    def test_milliseconds(self):
        assert verify_timestamp(str(int(time.time() * 1000)), 60)

    def test_garbage(self):
        assert not verify_timestamp("yesterday", 60)
