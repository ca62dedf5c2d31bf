"""Keystone - hardened application bootstrap and two-factor auth tooling."""
