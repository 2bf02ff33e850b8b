"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - External calls wrapped with retry/timeout/error mapping
    - Failures surface as PortalError subclasses (core/errors.py)
"""
