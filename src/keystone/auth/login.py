"""End-to-end login helpers for the REST API.

``login`` performs the password step and, when the API answers
``totp_token_required``, completes the second factor with a code generated
from the account's shared TOTP secret.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx
import pyotp

logger = logging.getLogger(__name__)

TOTP_REQUIRED_STATUS = "totp_token_required"


class LoginError(Exception):
    """Login failed. The message never includes credentials or tokens."""


def rest_url() -> str:
    """REST base URL derived from ``API_BASE_URL``."""
    return os.getenv("API_BASE_URL", "http://localhost:3000").rstrip("/") + "/rest"


def generate_totp_token(secret: str) -> str:
    """Current 6-digit code for a base32 TOTP secret."""
    return pyotp.TOTP(secret).now()


async def login(
    client: httpx.AsyncClient,
    email: str,
    password: str,
    totp_secret: str | None = None,
    base_url: str | None = None,
) -> Any:
    """Log in, answering the TOTP challenge when the API asks for one.

    Args:
        client: HTTP client used for both requests
        email: Account email
        password: Account password
        totp_secret: Base32 TOTP secret (defaults to ``TOTP_SECRET``)
        base_url: REST base URL (defaults to ``API_BASE_URL + "/rest"``)

    Returns:
        The ``authentication`` object from the API.

    Raises:
        LoginError: For any failure in either step.
    """
    base = (base_url or rest_url()).rstrip("/")
    try:
        login_res = await client.post(
            f"{base}/user/login", json={"email": email, "password": password}
        )
        login_res.raise_for_status()
        body = login_res.json()
        if not isinstance(body, dict):
            msg = "Login response is not a JSON object"
            raise TypeError(msg)

        if body.get("status") == TOTP_REQUIRED_STATUS:
            secret = totp_secret or os.environ["TOTP_SECRET"]
            totp_res = await client.post(
                f"{base}/2fa/verify",
                json={
                    "tmpToken": body["data"]["tmpToken"],
                    "totpToken": generate_totp_token(secret),
                },
            )
            totp_res.raise_for_status()
            return totp_res.json()["authentication"]

        return body["authentication"]
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
        logger.debug("Login failed: %s", type(e).__name__)
        msg = "Login failed securely"
        raise LoginError(msg) from e


async def get_status(
    client: httpx.AsyncClient, token: str, base_url: str | None = None
) -> httpx.Response:
    """Fetch the 2FA status for the user owning ``token``."""
    base = (base_url or rest_url()).rstrip("/")
    return await client.get(
        f"{base}/2fa/status",
        headers={
            "Authorization": f"Bearer {token}",
            "content-type": "application/json",
        },
    )
