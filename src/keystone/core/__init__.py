"""Keystone core utilities."""
