"""
Task subsystem.

Components:
- task_models.py: Task, ChecklistItem, StartDate classification, ArchiveFilter
- task_store.py: SQLite-backed storage for tasks, tag links and checklists
- task_service.py: the task engine (validation, tag resolution, orphan cleanup)
"""
