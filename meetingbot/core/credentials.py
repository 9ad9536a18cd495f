"""Credential providers producing a ServiceIdentity.

Two sourcing shapes are supported: separate client email / private key
fields, and a combined service account JSON document (inline or a file
path). The pipeline only depends on the ``CredentialProvider`` protocol.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from ..exceptions import ConfigurationError
from ..models import GOOGLE_TOKEN_URL, ServiceIdentity

logger = logging.getLogger(__name__)


@runtime_checkable
class CredentialProvider(Protocol):
    """Protocol for anything that can produce a ServiceIdentity."""

    def get_identity(self) -> ServiceIdentity:
        """Return the service identity.

        Raises:
            ConfigurationError: If required credential fields are missing
        """
        ...


class EnvFieldsCredentialProvider:
    """Builds the identity from separate client email and private key values."""

    def __init__(
        self,
        client_email: Optional[str],
        private_key: Optional[str],
        token_endpoint_url: str = GOOGLE_TOKEN_URL,
    ) -> None:
        self.client_email = client_email
        self.private_key = private_key
        self.token_endpoint_url = token_endpoint_url

    def get_identity(self) -> ServiceIdentity:
        # Values from a JSON document may be any type; only non-blank strings count
        missing = [
            name
            for name, value in (
                ("client_email", self.client_email),
                ("private_key", self.private_key),
                ("token_endpoint_url", self.token_endpoint_url),
            )
            if not isinstance(value, str) or not value.strip()
        ]
        if missing:
            raise ConfigurationError(
                f"Service account credential fields are not set: {', '.join(missing)}"
            )

        return ServiceIdentity(
            client_email=self.client_email.strip(),
            private_key_pem=self.private_key,
            token_endpoint_url=self.token_endpoint_url.strip(),
        )


class ServiceAccountFileCredentialProvider:
    """Builds the identity from a combined service account JSON document.

    The document may be given inline (a string starting with ``{``) or as a
    path to a JSON key file. Its ``token_uri`` wins over the configured
    token endpoint when present.
    """

    def __init__(self, document: str, token_endpoint_url: str = GOOGLE_TOKEN_URL) -> None:
        self.document = document
        self.token_endpoint_url = token_endpoint_url

    def _load_document(self) -> dict:
        text = self.document.strip()
        if not text:
            raise ConfigurationError("Service account document is empty")

        if not text.startswith("{"):
            path = Path(text).expanduser()
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(f"Cannot read service account file {path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Service account document is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError("Service account document must be a JSON object")
        return data

    def get_identity(self) -> ServiceIdentity:
        data = self._load_document()

        account_type = data.get("type")
        if account_type and account_type != "service_account":
            logger.warning("Service account document has unexpected type %r", account_type)

        return EnvFieldsCredentialProvider(
            client_email=data.get("client_email"),
            private_key=data.get("private_key"),
            token_endpoint_url=data.get("token_uri") or self.token_endpoint_url,
        ).get_identity()
