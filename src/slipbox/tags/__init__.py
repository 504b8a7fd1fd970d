"""
Tag subsystem.

Components:
- tag_models.py: Tag dataclass
- tag_store.py: SQLite-backed, owner-scoped storage
- tag_service.py: validation, get-or-create and orphan cleanup
"""
