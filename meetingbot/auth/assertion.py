"""JWT-bearer assertion building and RS256 signing."""

from __future__ import annotations

import base64
import datetime
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..exceptions import SigningError
from ..models import ServiceIdentity

logger = logging.getLogger(__name__)

ASSERTION_LIFETIME_SECONDS = 3600
CALENDAR_READONLY_SCOPE = "https://www.googleapis.com/auth/calendar.readonly"


def b64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _compact_json(value: dict[str, Any]) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class Assertion:
    """Unsigned claim envelope for a JWT-bearer grant."""

    claims: dict[str, Any]
    header: dict[str, str] = field(default_factory=lambda: {"alg": "RS256", "typ": "JWT"})

    def encode_unsigned(self) -> str:
        """Return ``base64url(header).base64url(claims)``."""
        return f"{b64url_encode(_compact_json(self.header))}.{b64url_encode(_compact_json(self.claims))}"


def build_assertion(
    identity: ServiceIdentity,
    scopes: Iterable[str],
    now: datetime.datetime,
) -> Assertion:
    """Build the claim set for a service account bearer assertion.

    Args:
        identity: Service account issuing the assertion
        scopes: OAuth scopes requested; an empty iterable yields an empty scope string
        now: Current wall-clock time

    Returns:
        Assertion valid for one hour from ``now``
    """
    issued_at = int(now.timestamp())
    claims = {
        "iss": identity.client_email,
        "scope": " ".join(scopes),
        "aud": identity.token_endpoint_url,
        "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
        "iat": issued_at,
    }
    return Assertion(claims=claims)


def sign_assertion(unsigned: str, key: rsa.RSAPrivateKey) -> str:
    """Sign an unsigned token and append the signature as the third segment.

    RSASSA-PKCS1-v1_5 is deterministic, so the same input and key always
    produce the same signed token.

    Args:
        unsigned: ``header.claims`` string from ``Assertion.encode_unsigned``
        key: RSA private key from ``parse_private_key``

    Returns:
        Compact signed token ``header.claims.signature``

    Raises:
        SigningError: If the key cannot sign with PKCS1 v1.5 / SHA-256
    """
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError(f"RS256 requires an RSA private key, got {type(key).__name__}")

    try:
        signature = key.sign(unsigned.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    except (AttributeError, ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError(f"Failed to sign assertion: {e}") from e

    logger.debug("Signed assertion (%d byte signature)", len(signature))
    return f"{unsigned}.{b64url_encode(signature)}"


def mint_signed_assertion(
    identity: ServiceIdentity,
    key: rsa.RSAPrivateKey,
    scopes: Iterable[str],
    now: datetime.datetime,
) -> str:
    """Build and sign an assertion in one step."""
    assertion = build_assertion(identity, scopes, now)
    return sign_assertion(assertion.encode_unsigned(), key)
