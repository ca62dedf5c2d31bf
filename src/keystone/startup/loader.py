"""Resolve ``module:attribute`` targets into bootstrap collaborators.

The orchestrator receives its validator and server as loader callables; these
helpers build such loaders from the import strings given on the command line
or in configuration.
"""

from __future__ import annotations

from collections.abc import Callable
import importlib
from types import ModuleType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from keystone.server import ServerHandle
    from keystone.startup.orchestrator import Validator

VALIDATOR_ATTRIBUTES = ("validate_dependencies", "validate", "main")


def import_target(target: str) -> Any:
    """Import ``package.module:attr.sub`` (or a bare module path)."""
    module_name, _, attr_path = target.partition(":")
    if not module_name:
        msg = f"Invalid import target: {target!r}"
        raise ImportError(msg)

    obj: Any = importlib.import_module(module_name)
    for attr in filter(None, attr_path.split(".")):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            msg = f"{module_name!r} has no attribute {attr_path!r}"
            raise ImportError(msg) from e
    return obj


def _is_server_handle(obj: Any) -> bool:
    return callable(getattr(obj, "start", None)) and callable(getattr(obj, "stop", None))


def validator_loader(target: str) -> Callable[[], Validator]:
    """Build a loader returning the validator callable named by ``target``.

    A module target is searched for a conventional validator function.
    """

    def load() -> Validator:
        obj = import_target(target)
        if isinstance(obj, ModuleType):
            for name in VALIDATOR_ATTRIBUTES:
                candidate = getattr(obj, name, None)
                if callable(candidate):
                    return candidate
            msg = f"No validator found in module {target!r}"
            raise ImportError(msg)
        if not callable(obj):
            msg = f"Validator target {target!r} is not callable"
            raise TypeError(msg)
        return obj

    return load


def server_loader(target: str) -> Callable[[], ServerHandle]:
    """Build a loader returning the server handle named by ``target``.

    The target may be a handle (including a module with ``start``/``stop``
    functions) or a zero-argument factory returning one.
    """

    def load() -> ServerHandle:
        obj = import_target(target)
        if isinstance(obj, type) or (callable(obj) and not _is_server_handle(obj)):
            obj = obj()
        if not _is_server_handle(obj):
            msg = f"Server target {target!r} does not provide start() and stop()"
            raise TypeError(msg)
        return obj

    return load
