"""auth/ -- Credential storage, password hashing, session tokens and the session gate.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or forms/.
api/ imports from auth/, not the other way around.
"""
