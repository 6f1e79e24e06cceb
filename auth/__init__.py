"""auth/ -- User accounts, credentials, and verification tokens for AuthGate.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
