# src/slipbox/rpc/operations.py

"""
Operation handlers for POST /call.

Each handler receives (state, owner_id, args), validates its camelCase
arguments before touching storage, and returns a JSON-ready result.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.errors import InvalidArgumentError, UnimplementedError
from ..core.state import AppState
from ..core.validation import parse_start_date, parse_timestamp, parse_uuid
from ..tasks.task_models import ArchiveFilter, StartDate, StartDateKind
from .registry import OperationRegistry
from .serializers import api_token_to_dict, item_to_dict, tag_to_dict, task_to_dict

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100

registry = OperationRegistry()


# ---- argument helpers ----

def _str_arg(args: dict[str, Any], key: str, *, default: str = "") -> str:
    value = args.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{key} must be a string")
    return value


def _bool_arg(args: dict[str, Any], key: str, *, required: bool = False) -> bool:
    value = args.get(key)
    if value is None:
        if required:
            raise InvalidArgumentError(f"{key} is required")
        return False
    if not isinstance(value, bool):
        raise InvalidArgumentError(f"{key} must be a boolean")
    return value


def _str_list_arg(args: dict[str, Any], key: str) -> list[str]:
    value = args.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidArgumentError(f"{key} must be a list of strings")
    return list(value)


def _id_arg(args: dict[str, Any], key: str, what: str) -> str:
    return parse_uuid(args.get(key), what)


def _page_size(args: dict[str, Any]) -> int:
    raw = args.get("pageSize")
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0 or raw > MAX_PAGE_SIZE:
        return DEFAULT_PAGE_SIZE
    return raw


def _require_first_page(args: dict[str, Any]) -> None:
    token = args.get("pageToken")
    if token not in (None, ""):
        raise UnimplementedError("pagination with page_token is not yet implemented")


def _start_date_arg(args: dict[str, Any]) -> StartDate | None:
    """
    startDate / startDateKind as sent by CreateTask and UpdateTask:
    - both keys absent: None (CreateTask files into the inbox, UpdateTask
      leaves the stored classification alone)
    - startDate null or "": inbox
    - startDate "YYYY-MM-DD": scheduled on that date

    startDateKind, when given, must agree with startDate.
    """
    raw_kind = args.get("startDateKind")
    if "startDate" not in args and raw_kind is None:
        return None

    raw = args.get("startDate")
    if raw is None or raw == "":
        on = None
    elif isinstance(raw, str):
        on = parse_start_date(raw)
    else:
        raise InvalidArgumentError("invalid start_date format: expected YYYY-MM-DD")

    if raw_kind is None:
        return StartDate.from_optional(on)
    return StartDate(StartDateKind.parse(_str_arg(args, "startDateKind")), on)


# ---- tasks ----

def op_create_task(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    task = state.tasks.create_task(
        owner_id,
        title=_str_arg(args, "title"),
        notes=_str_arg(args, "notes"),
        tag_names=_str_list_arg(args, "tagNames"),
        start_date=_start_date_arg(args) or StartDate.inbox(),
        checklist=_str_list_arg(args, "checklistItems"),
    )
    return {"task": task_to_dict(task)}


def op_get_task(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    task = state.tasks.get_task(owner_id, _id_arg(args, "id", "task"))
    return {"task": task_to_dict(task)}


def op_update_task(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    task_id = _id_arg(args, "id", "task")
    start_date = _start_date_arg(args)
    task = state.tasks.update_task(
        owner_id,
        task_id,
        title=_str_arg(args, "title"),
        notes=_str_arg(args, "notes"),
        tag_names=_str_list_arg(args, "tagNames"),
        start_date=start_date,
    )
    return {"task": task_to_dict(task)}


def op_delete_task(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    state.tasks.delete_task(owner_id, _id_arg(args, "id", "task"))
    return {}


def op_list_tasks(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    _require_first_page(args)
    filter_tag_ids = [parse_uuid(t, "tag") for t in _str_list_arg(args, "filterTagIds")]
    archive_filter = ArchiveFilter.from_flags(
        include_archived=_bool_arg(args, "includeArchived"),
        archived_only=_bool_arg(args, "archivedOnly"),
    )
    tasks = state.tasks.list_tasks(
        owner_id,
        filter_tag_ids=filter_tag_ids,
        limit=_page_size(args),
        offset=0,
        archive_filter=archive_filter,
    )
    return {"tasks": [task_to_dict(t) for t in tasks], "nextPageToken": ""}


def op_archive_task(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    task = state.tasks.archive_task(owner_id, _id_arg(args, "id", "task"))
    return {"task": task_to_dict(task)}


def op_unarchive_task(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    task = state.tasks.unarchive_task(owner_id, _id_arg(args, "id", "task"))
    return {"task": task_to_dict(task)}


# ---- checklist ----

def op_add_checklist_item(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    item = state.tasks.add_checklist_item(
        owner_id,
        _id_arg(args, "taskId", "task"),
        _str_arg(args, "content"),
    )
    return {"item": item_to_dict(item)}


def op_update_checklist_item(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    item = state.tasks.update_checklist_item_content(
        owner_id,
        _id_arg(args, "id", "checklist item"),
        _str_arg(args, "content"),
    )
    return {"item": item_to_dict(item)}


def op_set_checklist_item_completed(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    item = state.tasks.set_checklist_item_completed(
        owner_id,
        _id_arg(args, "id", "checklist item"),
        _bool_arg(args, "completed", required=True),
    )
    return {"item": item_to_dict(item)}


def op_delete_checklist_item(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    state.tasks.delete_checklist_item(owner_id, _id_arg(args, "id", "checklist item"))
    return {}


def op_list_checklist_items(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    items = state.tasks.list_checklist_items(owner_id, _id_arg(args, "taskId", "task"))
    return {"items": [item_to_dict(i) for i in items]}


def op_reorder_checklist_items(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    item_ids = [parse_uuid(i, "checklist item") for i in _str_list_arg(args, "itemIds")]
    items = state.tasks.reorder_checklist_items(owner_id, _id_arg(args, "taskId", "task"), item_ids)
    return {"items": [item_to_dict(i) for i in items]}


# ---- tags ----

def op_create_tag(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    tag = state.tags.create_tag(owner_id, _str_arg(args, "name"))
    return {"tag": tag_to_dict(tag)}


def op_get_tag(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    tag = state.tags.get_tag(owner_id, _id_arg(args, "id", "tag"))
    return {"tag": tag_to_dict(tag)}


def op_update_tag(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    tag = state.tags.update_tag(owner_id, _id_arg(args, "id", "tag"), _str_arg(args, "name"))
    return {"tag": tag_to_dict(tag)}


def op_delete_tag(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    state.tags.delete_tag(owner_id, _id_arg(args, "id", "tag"))
    return {}


def op_list_tags(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    _require_first_page(args)
    tags = state.tags.list_tags(owner_id, limit=_page_size(args), offset=0)
    return {"tags": [tag_to_dict(t) for t in tags], "nextPageToken": ""}


# ---- api tokens ----

def op_create_api_token(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    raw_expiry = args.get("expiresAt")
    expires_at = None if raw_expiry in (None, "") else parse_timestamp(raw_expiry, "expires_at")
    token = state.tokens.create_token(owner_id, _str_arg(args, "name"), expires_at)
    return {"apiToken": api_token_to_dict(token, include_secret=True)}


def op_get_api_token(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    token = state.tokens.get_token(owner_id, _id_arg(args, "id", "api token"))
    return {"apiToken": api_token_to_dict(token)}


def op_list_api_tokens(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    tokens = state.tokens.list_tokens(owner_id)
    return {"apiTokens": [api_token_to_dict(t) for t in tokens]}


def op_revoke_api_token(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    state.tokens.revoke_token(owner_id, _id_arg(args, "id", "api token"))
    return {}


def op_delete_api_token(state: AppState, owner_id: str, args: dict[str, Any]) -> dict[str, Any]:
    state.tokens.delete_token(owner_id, _id_arg(args, "id", "api token"))
    return {}


registry.register("CreateTask", op_create_task, "Create a task (tags are created by name as needed).")
registry.register("GetTask", op_get_task, "Get one task by id.")
registry.register("UpdateTask", op_update_task, "Replace title/notes/tags; startDate only changes when supplied.")
registry.register("DeleteTask", op_delete_task, "Delete a task with its checklist and tag links.")
registry.register("ListTasks", op_list_tasks, "List tasks, optionally by tag ids and archive state.")
registry.register("ArchiveTask", op_archive_task, "Mark a task archived.")
registry.register("UnarchiveTask", op_unarchive_task, "Clear a task's archived mark.")
registry.register("AddChecklistItem", op_add_checklist_item, "Append a checklist item to a task.")
registry.register("UpdateChecklistItem", op_update_checklist_item, "Change a checklist item's content.")
registry.register(
    "SetChecklistItemCompleted",
    op_set_checklist_item_completed,
    "Mark a checklist item completed or not.",
)
registry.register("DeleteChecklistItem", op_delete_checklist_item, "Delete a checklist item.")
registry.register("ListChecklistItems", op_list_checklist_items, "List a task's checklist in order.")
registry.register(
    "ReorderChecklistItems",
    op_reorder_checklist_items,
    "Reorder a task's checklist; itemIds must list every item exactly once.",
)
registry.register("CreateTag", op_create_tag, "Create a tag.")
registry.register("GetTag", op_get_tag, "Get one tag by id.")
registry.register("UpdateTag", op_update_tag, "Rename a tag.")
registry.register("DeleteTag", op_delete_tag, "Delete a tag.")
registry.register("ListTags", op_list_tags, "List tags by name.")
registry.register("CreateAPIToken", op_create_api_token, "Create an API token; the secret is only returned here.")
registry.register("GetAPIToken", op_get_api_token, "Get one of your API tokens.")
registry.register("ListAPITokens", op_list_api_tokens, "List your API tokens.")
registry.register("RevokeAPIToken", op_revoke_api_token, "Deactivate an API token.")
registry.register("DeleteAPIToken", op_delete_api_token, "Delete an API token.")
