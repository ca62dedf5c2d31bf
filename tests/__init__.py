"""Keystone Test Suite.

- startup/: Bootstrap pipeline, lifecycle and audit tests
- auth/: Two-factor client and login flow tests
- integration/: Live server and REST API tests
"""

from __future__ import annotations
