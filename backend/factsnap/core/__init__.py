"""Core Layer — pure domain logic, no IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or repositories/
    - Gates and validators are pure: they return an error or None, never raise
"""
