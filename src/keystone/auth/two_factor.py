"""Two-factor authentication client service.

Talks to the REST API's ``/rest/2fa`` endpoints. The temporary token handed
out with ``totp_token_required`` is kept in process memory only, and the API
base URL must use HTTPS.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://localhost:3000/rest/2fa"
LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}
TOTP_TOKEN_PATTERN = re.compile(r"^\d{6}$")


class TwoFactorError(Exception):
    """The 2FA API rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InsecureEndpointError(ValueError):
    """The configured API base URL does not use HTTPS."""


class InvalidTotpTokenError(ValueError):
    """A TOTP token is not a 6-digit code."""


class TwoFactorStatus(BaseModel):
    """2FA status of the current user."""

    model_config = ConfigDict(populate_by_name=True)

    setup: bool = Field(..., description="Whether 2FA is enabled")
    secret: str | None = Field(None, description="Secret for a pending setup")
    email: str | None = Field(None, description="Account email")
    setup_token: str | None = Field(
        None, alias="setupToken", description="Token that authorizes setup"
    )


def validate_totp_token(token: str) -> str:
    """Return ``token`` stripped, or raise if it is not a 6-digit code."""
    value = (token or "").strip()
    if not TOTP_TOKEN_PATTERN.fullmatch(value):
        msg = "TOTP token must be exactly 6 digits"
        raise InvalidTotpTokenError(msg)
    return value


def require_https(base_url: str, *, allow_insecure_localhost: bool = False) -> str:
    """Reject non-HTTPS base URLs (plain HTTP to localhost optionally allowed)."""
    parsed = urlparse(base_url)
    if not parsed.netloc:
        msg = f"Invalid 2FA API base URL: {base_url!r}"
        raise InsecureEndpointError(msg)
    if parsed.scheme == "https":
        return base_url.rstrip("/")
    if (
        parsed.scheme == "http"
        and allow_insecure_localhost
        and parsed.hostname in LOCAL_HOSTS
    ):
        return base_url.rstrip("/")
    msg = f"2FA API base URL must use HTTPS: {base_url!r}"
    raise InsecureEndpointError(msg)


class TwoFactorAuthService:
    """Client for the 2FA endpoints of the REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        allow_insecure_localhost: bool = False,
        auth_token: str | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            base_url: 2FA API base (defaults to ``TWO_FACTOR_API_BASE``)
            client: HTTP client to use (one is created if omitted)
            allow_insecure_localhost: Permit plain HTTP to localhost for tests
            auth_token: Bearer token for authenticated endpoints
        """
        self.base_url = require_https(
            base_url or os.getenv("TWO_FACTOR_API_BASE", DEFAULT_API_BASE),
            allow_insecure_localhost=allow_insecure_localhost,
        )
        self._client = client or httpx.AsyncClient(timeout=10.0)
        self._owns_client = client is None
        self._tmp_token: str | None = None
        self.auth_token = auth_token

    async def __aenter__(self) -> TwoFactorAuthService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._tmp_token = None
        if self._owns_client:
            await self._client.aclose()

    @property
    def tmp_token(self) -> str | None:
        return self._tmp_token

    def remember_tmp_token(self, tmp_token: str) -> None:
        """Keep the login's temporary token for the verify call."""
        self._tmp_token = tmp_token

    def clear_tmp_token(self) -> None:
        self._tmp_token = None

    def _headers(self) -> dict[str, str]:
        headers = {"content-type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{path}"
        try:
            response = await self._client.request(
                method, url, json=json, headers=self._headers()
            )
        except httpx.HTTPError as e:
            msg = f"2FA request to {path} failed"
            raise TwoFactorError(msg) from e

        if response.is_error:
            logger.warning("2FA %s %s returned %d", method, path, response.status_code)
            msg = f"2FA request to {path} was rejected"
            raise TwoFactorError(msg, status_code=response.status_code)

        if not response.content:
            return {}
        return response.json()

    async def verify(self, totp_token: str) -> Any:
        """Exchange the stored temporary token and a TOTP code for authentication."""
        token = validate_totp_token(totp_token)
        if self._tmp_token is None:
            msg = "No temporary login token to verify"
            raise TwoFactorError(msg)

        data = await self._request(
            "POST", "verify", {"tmpToken": self._tmp_token, "totpToken": token}
        )
        self.clear_tmp_token()
        return data.get("authentication")

    async def status(self) -> TwoFactorStatus:
        data = await self._request("GET", "status")
        return TwoFactorStatus.model_validate(data)

    async def setup(self, password: str, setup_token: str, initial_token: str) -> None:
        """Enable 2FA with the first code from the authenticator app."""
        await self._request(
            "POST",
            "setup",
            {
                "password": password,
                "setupToken": setup_token,
                "initialToken": validate_totp_token(initial_token),
            },
        )

    async def disable(self, password: str) -> None:
        await self._request("POST", "disable", {"password": password})
