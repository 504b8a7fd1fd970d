"""
slipbox: multi-tenant task/tag backend.

Subpackages:
- auth: access-token verification and per-request identity resolution
- tokens: long-lived API tokens
- tags: per-owner tags with get-or-create and orphan cleanup
- tasks: tasks, start-date classification and checklists
- rpc: operation registry and the HTTP app serving it
"""

__version__ = "0.1.0"
