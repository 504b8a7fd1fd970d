"""
API tokens: opaque long-lived credentials that stand in for a signed access token.

Components:
- token_models.py: ApiToken record
- token_store.py: SQLite storage
- token_service.py: owner-checked CRUD and validation
"""
