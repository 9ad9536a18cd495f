"""Shared fixtures for meetingbot tests."""

from collections.abc import AsyncIterator, Generator
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from meetingbot.core.http_client import close_all_clients
from meetingbot.models import ServiceIdentity

from .helpers import TOKEN_URL


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """One RSA key for the whole session; generation is slow."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    """Unencrypted PKCS8 PEM text for the session key."""
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_identity(private_key_pem: str) -> ServiceIdentity:
    return ServiceIdentity(
        client_email="bot@project.iam.gserviceaccount.com",
        private_key_pem=private_key_pem,
        token_endpoint_url=TOKEN_URL,
    )


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear meetingbot environment variables so host settings never leak into tests."""
    import os

    for key in list(os.environ):
        if key.startswith("MEETINGBOT_") or key.startswith(("GOOGLE_", "LINE_")):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("PORT", raising=False)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to prevent resource leaks."""
    yield
    await close_all_clients()


@pytest.fixture
def new_york_local_tz() -> Generator[Any, Any, None]:
    """Run with the process-local timezone set to America/New_York."""
    import os
    import time

    from meetingbot.core.timezone_utils import get_local_timezone

    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")

    saved = os.environ.get("TZ")
    os.environ["TZ"] = "America/New_York"
    time.tzset()
    try:
        if time.timezone != 5 * 3600:
            pytest.skip("America/New_York zone data is not installed")
        yield get_local_timezone()
    finally:
        if saved is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = saved
        time.tzset()
