"""forms/ -- Business form persistence.

Layer rule: forms/ imports only stdlib, third-party libraries, and core/.
Ownership comes from the caller (the gated route passes the session user id).
"""
