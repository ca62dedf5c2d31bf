"""Keystone auth helpers: two-factor client service and login flow."""

from keystone.auth.login import LoginError, get_status, login
from keystone.auth.two_factor import (
    InsecureEndpointError,
    InvalidTotpTokenError,
    TwoFactorAuthService,
    TwoFactorError,
    TwoFactorStatus,
)

__all__ = [
    "InsecureEndpointError",
    "InvalidTotpTokenError",
    "LoginError",
    "TwoFactorAuthService",
    "TwoFactorError",
    "TwoFactorStatus",
    "get_status",
    "login",
]
