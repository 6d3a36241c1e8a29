"""auth/ -- Credential management and session-based authorization.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/, web/, or content/.
api/ and web/ import from auth/, not the other way around.
"""
