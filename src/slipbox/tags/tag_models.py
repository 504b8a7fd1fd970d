# src/slipbox/tags/tag_models.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Tag:
    id: str
    name: str
    owner_id: str
    created_at: float
    updated_at: float
