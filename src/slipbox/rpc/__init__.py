"""
RPC surface.

Components:
- registry.py: operation registry (name -> handler + description)
- operations.py: argument parsing and the operation handlers
- serializers.py: domain objects -> wire dicts
- router.py: envelope dispatch, identity resolution, error mapping
- app.py: FastAPI app exposing POST /call
"""
