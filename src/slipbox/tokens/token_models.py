# src/slipbox/tokens/token_models.py

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(slots=True)
class ApiToken:
    id: str
    token: str
    user_id: str
    name: str
    created_at: float
    expires_at: float | None = None
    last_used_at: float | None = None
    is_active: bool = True

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now >= self.expires_at

    def is_valid(self, now: float | None = None) -> bool:
        """Active and not expired. Both conditions are checked separately."""
        return self.is_active and not self.is_expired(now)
