# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit a real .env. Nothing here is secret: the service only holds the
identity authority's public keys, fetched from SLIPBOX_JWKS_URL at startup.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "SLIPBOX_APP_NAME": "App display name (default: slipbox).",
    "SLIPBOX_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # HTTP listener
    "SLIPBOX_HOST": "Bind address for the RPC server (default: 127.0.0.1).",
    "SLIPBOX_PORT": "Port for the RPC server (default: 9090).",
    # Paths (gitignored)
    "SLIPBOX_DATA_DIR": "Local data directory, also holds slipbox.log (default: .local/slipbox).",
    "SLIPBOX_DB_PATH": "SQLite database path (default: <data_dir>/slipbox.sqlite3).",
    # Identity authority
    "SLIPBOX_JWKS_URL": (
        "JWKS endpoint of the identity authority (default: http://localhost:8080/.well-known/jwks.json)."
    ),
    "SLIPBOX_EXPECTED_ISSUER": "Required 'iss' claim of access tokens (default: identra).",
    "SLIPBOX_JWKS_TIMEOUT_SECONDS": "HTTP timeout for the startup JWKS fetch (default: 10).",
    # Background work
    "SLIPBOX_DETACHED_WORKERS": "Threads for detached jobs such as API-token last-used updates (default: 2).",
}
