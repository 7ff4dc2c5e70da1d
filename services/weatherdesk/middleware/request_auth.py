"""
HMAC-SHA256 verification of gateway-asserted identity.

The API gateway authenticates the browser session, then signs each request
it forwards here. This service never sees or issues session tokens.

Canonical string format: METHOD|normalizedPath|sortedQueryString|timestamp|userId|bodyHash

Headers:
  X-User-Id         asserted user id
  X-Auth-Timestamp  unix seconds
  X-Body-Hash       sha256 hex of the raw body
  X-Auth-Signature  hex HMAC of the canonical string
"""

import hashlib
import hmac
import re
import time

from fastapi import HTTPException, Request

from services.weatherdesk.config import settings

USER_ID_HEADER = "X-User-Id"
TIMESTAMP_HEADER = "X-Auth-Timestamp"
BODY_HASH_HEADER = "X-Body-Hash"
SIGNATURE_HEADER = "X-Auth-Signature"

SIGNED_HEADERS = (USER_ID_HEADER, TIMESTAMP_HEADER, BODY_HASH_HEADER, SIGNATURE_HEADER)


# ---------------------------------------------------------------------------
# Path normalization (must match the gateway signer exactly)
# ---------------------------------------------------------------------------

def normalize_path(path: str) -> str:
    """Normalize path: lowercase, collapse //, strip trailing /, reject .."""
    normalized = path.lower()
    normalized = re.sub(r"/+", "/", normalized)
    if len(normalized) > 1 and normalized.endswith("/"):
        normalized = normalized[:-1]
    segments = normalized.split("/")
    if ".." in segments:
        raise HTTPException(status_code=400, detail="Path traversal detected")
    return normalized


def sort_query_string(query_string: str) -> str:
    """Sort query params alphabetically."""
    if not query_string:
        return ""
    params = [p for p in query_string.split("&") if p]
    params.sort()
    return "&".join(params)


def compute_body_hash(body: bytes) -> str:
    """SHA-256 hex digest of raw body bytes."""
    return hashlib.sha256(body).hexdigest()


def canonical_string(
    method: str, path: str, query_string: str, timestamp: int, user_id: str, body_hash: str
) -> str:
    return (
        f"{method.upper()}|{normalize_path(path)}|{sort_query_string(query_string)}"
        f"|{timestamp}|{user_id}|{body_hash}"
    )


def sign(secret: str, canonical: str) -> str:
    return hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def has_identity_headers(request: Request) -> bool:
    return any(request.headers.get(h) for h in SIGNED_HEADERS)


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

async def verify_request_signature(request: Request) -> str:
    """
    Verify the gateway signature on a request.

    Returns the verified user id. Raises HTTPException on any failure.
    """
    secret = settings.auth_hmac_secret
    if not secret:
        raise HTTPException(status_code=503, detail="Request signing secret not configured")

    signature = request.headers.get(SIGNATURE_HEADER)
    timestamp_str = request.headers.get(TIMESTAMP_HEADER)
    user_id = request.headers.get(USER_ID_HEADER)
    body_hash_header = request.headers.get(BODY_HASH_HEADER)

    if not all([signature, timestamp_str, user_id, body_hash_header]):
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        timestamp = int(timestamp_str)  # type: ignore[arg-type]
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid timestamp format")

    if abs(int(time.time()) - timestamp) > settings.auth_replay_window_s:
        raise HTTPException(status_code=401, detail="Request timestamp expired")

    # Read raw body BEFORE any JSON parsing
    body = await request.body()
    computed_body_hash = compute_body_hash(body)
    if not hmac.compare_digest(computed_body_hash, body_hash_header):  # type: ignore[arg-type]
        raise HTTPException(status_code=401, detail="Body hash mismatch")

    canonical = canonical_string(
        request.method,
        request.url.path,
        request.url.query or "",
        timestamp,
        user_id,  # type: ignore[arg-type]
        computed_body_hash,
    )
    if not hmac.compare_digest(sign(secret, canonical), signature):  # type: ignore[arg-type]
        raise HTTPException(status_code=401, detail="Invalid signature")

    return user_id  # type: ignore[return-value]
