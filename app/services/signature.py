"""Webhook signature verification.

GitHub signs the raw body with HMAC-SHA256 and sends ``X-Hub-Signature-256:
sha256=<hex>``. GitLab instead echoes the shared secret verbatim in
``X-Gitlab-Token``. Which check applies is decided by the header present;
a request carrying neither is rejected.
"""

import hashlib
import hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)

HMAC_HEADER = "x-hub-signature-256"
TOKEN_HEADER = "x-gitlab-token"
SIGNATURE_PREFIX = "sha256="


class SignatureMode(StrEnum):
    HMAC = "hmac"
    TOKEN = "token"


@dataclass(frozen=True)
class SignatureHeader:
    mode: SignatureMode
    value: str


def sign(raw_body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` header value for a body."""
    digest = hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify(raw_body: bytes, signature_header: str, secret: str) -> bool:
    """Constant-time HMAC-SHA256 check. Never raises."""
    if not secret or not signature_header:
        return False
    try:
        expected = sign(raw_body, secret)
        return hmac.compare_digest(expected.encode(), signature_header.encode())
    except Exception:
        logger.debug("Signature check errored", exc_info=True)
        return False


def verify_token(provided: str, secret: str) -> bool:
    """Constant-time exact comparison of a bare token header."""
    if not secret or not provided:
        return False
    try:
        return hmac.compare_digest(provided.encode(), secret.encode())
    except Exception:
        logger.debug("Token check errored", exc_info=True)
        return False


def extract_signature(headers: Mapping[str, str]) -> SignatureHeader | None:
    """Pick the signature-bearing header, HMAC taking precedence."""
    lowered = {k.lower(): v for k, v in headers.items()}
    if lowered.get(HMAC_HEADER):
        return SignatureHeader(SignatureMode.HMAC, lowered[HMAC_HEADER])
    if lowered.get(TOKEN_HEADER):
        return SignatureHeader(SignatureMode.TOKEN, lowered[TOKEN_HEADER])
    return None


def verify_signature(signature: SignatureHeader, raw_body: bytes, secret: str) -> bool:
    if signature.mode is SignatureMode.HMAC:
        return verify(raw_body, signature.value, secret)
    return verify_token(signature.value, secret)


def verify_request(headers: Mapping[str, str], raw_body: bytes, secret: str) -> bool:
    """Verify a request, failing closed when no signature header is present."""
    signature = extract_signature(headers)
    if signature is None:
        return False
    return verify_signature(signature, raw_body, secret)
