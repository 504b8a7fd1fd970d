# src/slipbox/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used across components.

Services depend on these Protocols instead of concrete classes, so the
identity resolver and token service can be exercised with fakes in tests.
"""

from collections.abc import Callable
from typing import Any, Protocol


class ClaimsVerifier(Protocol):
    """Signed access-token verification (see auth.credentials.AccessTokenVerifier)."""

    def verify(self, token: str) -> Any: ...
    def extract_user_id(self, claims: Any) -> str: ...


class TokenValidator(Protocol):
    """Opaque API-token lookup: token value -> owner id."""

    def validate(self, token_value: str) -> str: ...


class BackgroundRunner(Protocol):
    """Fire-and-forget work that outlives the request that scheduled it."""

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool: ...
