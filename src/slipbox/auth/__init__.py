"""
Authentication.

Components:
- credentials.py: JWKS loading and access-token verification (PyJWT)
- identity.py: Authorization header -> owner id, public-operation allowlist
"""
