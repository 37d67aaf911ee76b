"""Infrastructure Layer — database, external clients and cross-cutting concerns.

Invariants:
    - All external calls wrapped with timeout/error mapping into core/errors.py
"""
