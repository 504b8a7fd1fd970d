"""
Process entry point.

Components:
- bootstrap.py: composition root (settings -> AppState)
- main.py: logging, HTTP server lifecycle, shutdown
"""
