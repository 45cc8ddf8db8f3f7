"""
Scope enforcement for API key principals.
"""

from __future__ import annotations

from collections.abc import Iterable

from gatekit_core.domain.auth import ALL_SCOPES, ApiScope
from gatekit_core.runtime.errors import BadRequestError


def _as_str(scope: str | ApiScope) -> str:
    return scope.value if isinstance(scope, ApiScope) else scope


def has_required_scopes(
    required: Iterable[str | ApiScope],
    granted: Iterable[str | ApiScope],
) -> bool:
    """Return True iff every required scope is granted.

    An empty requirement always passes.
    """
    granted_set = {_as_str(s) for s in granted}
    return all(_as_str(s) in granted_set for s in required)


def validate_scopes(scopes: Iterable[str]) -> list[str]:
    """Validate scopes requested for a new API key.

    Returns the scopes de-duplicated in request order.

    Raises:
        BadRequestError: If no scope is given or a scope is unknown.
    """
    result: list[str] = []
    for scope in scopes:
        if scope not in ALL_SCOPES:
            raise BadRequestError(f"Unknown scope '{scope}'")
        if scope not in result:
            result.append(scope)

    if not result:
        raise BadRequestError("At least one scope is required")
    return result
