"""Repositories — the only modules that issue SQL.

Invariants:
    - Every multi-statement write runs inside DatabaseSessionManager.transaction()
    - Store errors leave this package already translated into core/errors.py types
    - Concurrent units of work each open their own session
"""
