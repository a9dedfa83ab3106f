"""
Webhook Security Module

Signature verification for Mercado Pago notifications.
- Manifest: id:<data.id>;request-id:<x-request-id>;ts:<ts>;
- HMAC-SHA256 lowercase hex, compared in constant time
- Optional timestamp freshness check
"""

import hashlib
import hmac
import logging
import time
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class SignatureCheck(str, Enum):
    """Result of checking an x-signature header"""

    VERIFIED = "verified"
    INVALID = "invalid"  # header present and well formed, digest mismatch or stale
    UNVERIFIED = "unverified"  # header, request id or secret missing / malformed


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def build_manifest(data_id: str, request_id: str, ts: str) -> str:
    return f"id:{data_id};request-id:{request_id};ts:{ts};"


def parse_signature_header(header: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Parse "ts=<unix>,v1=<hex>" into (ts, v1).

    Parts may come in any order and carry surrounding whitespace. Returns
    (None, None) when either part is missing.
    """
    if not header:
        return None, None

    parts = {}
    for item in header.split(","):
        key, sep, value = item.partition("=")
        if not sep:
            continue
        parts[key.strip().lower()] = value.strip()

    ts = parts.get("ts")
    v1 = parts.get("v1")
    if not ts or not v1:
        return None, None
    return ts, v1


def verify_timestamp(timestamp: Optional[str], max_age: int) -> bool:
    """
    Verify webhook timestamp is within acceptable range.
    Mercado Pago sends ts in milliseconds; seconds are accepted too.
    max_age <= 0 disables the check.
    """
    if max_age <= 0:
        return True
    if not timestamp:
        return False

    try:
        webhook_time = int(timestamp)
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if webhook_time > 10_000_000_000:
        webhook_time //= 1000
    age = abs(int(time.time()) - webhook_time)
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def verify_mercadopago_signature(
    data_id: Optional[str],
    request_id: Optional[str],
    signature_header: Optional[str],
    secret: Optional[str],
    max_age: int = 0,
) -> SignatureCheck:
    """
    Check a Mercado Pago x-signature header against the notification id.

    Never raises: the caller decides what an unverified delivery may do.
    """
    if not secret:
        logger.warning("⚠️ MERCADO_PAGO_WEBHOOK_SECRET not configured, signature not checked")
        return SignatureCheck.UNVERIFIED

    ts, received = parse_signature_header(signature_header)
    if not ts or not received:
        logger.warning("⚠️ Missing or malformed x-signature header")
        return SignatureCheck.UNVERIFIED
    if not request_id or not data_id:
        logger.warning("⚠️ Missing x-request-id or notification id, signature not checked")
        return SignatureCheck.UNVERIFIED

    manifest = build_manifest(str(data_id), request_id, ts)
    expected = compute_hmac_sha256(secret, manifest.encode("utf-8"))

    if not constant_time_compare(expected, received.lower()):
        logger.warning(f"🚫 Mercado Pago signature mismatch for notification {data_id}")
        return SignatureCheck.INVALID

    if not verify_timestamp(ts, max_age):
        return SignatureCheck.INVALID

    logger.debug(f"✅ Mercado Pago signature verified for notification {data_id}")
    return SignatureCheck.VERIFIED


def create_webhook_signature(secret: str, data_id: str, request_id: str, ts: Optional[str] = None) -> str:
    """
    Create an x-signature header value, for tests and local replays.

    Returns:
        Header string in the form "ts=<ts>,v1=<hex>"
    """
    if ts is None:
        ts = str(int(time.time() * 1000))
    signature = compute_hmac_sha256(secret, build_manifest(data_id, request_id, ts).encode("utf-8"))
    return f"ts={ts},v1={signature}"
