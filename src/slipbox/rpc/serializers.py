# src/slipbox/rpc/serializers.py

"""Domain objects -> JSON-ready dicts (camelCase keys, ISO-8601 UTC timestamps)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..tags.tag_models import Tag
from ..tasks.task_models import ChecklistItem, Task
from ..tokens.token_models import ApiToken


def iso(ts: float | None) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def item_to_dict(item: ChecklistItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "taskId": item.task_id,
        "content": item.content,
        "completed": item.completed,
        "sortOrder": item.sort_order,
        "createdAt": iso(item.created_at),
        "updatedAt": iso(item.updated_at),
    }


def task_to_dict(task: Task) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "notes": task.notes,
        "ownerId": task.owner_id,
        "createdAt": iso(task.created_at),
        "updatedAt": iso(task.updated_at),
        "archivedAt": iso(task.archived_at),
        "startDateKind": task.start_date.kind.value,
        "tagIds": list(task.tag_ids),
        "checklistItems": [item_to_dict(i) for i in task.checklist],
    }
    # Inbox tasks carry no startDate key at all.
    if task.start_date.on is not None:
        out["startDate"] = task.start_date.on.isoformat()
    return out


def tag_to_dict(tag: Tag) -> dict[str, Any]:
    return {
        "id": tag.id,
        "name": tag.name,
        "ownerId": tag.owner_id,
        "createdAt": iso(tag.created_at),
        "updatedAt": iso(tag.updated_at),
    }


def api_token_to_dict(token: ApiToken, *, include_secret: bool = False) -> dict[str, Any]:
    """The secret token value is only included right after creation."""
    out: dict[str, Any] = {
        "id": token.id,
        "userId": token.user_id,
        "name": token.name,
        "createdAt": iso(token.created_at),
        "expiresAt": iso(token.expires_at),
        "lastUsedAt": iso(token.last_used_at),
        "isActive": token.is_active,
    }
    if include_secret:
        out["token"] = token.token
    return out
