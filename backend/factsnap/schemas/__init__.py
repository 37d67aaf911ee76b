"""Pydantic Schemas — request/response contracts for API endpoints.

Invariants:
    - Schemas validate shape at the boundary; domain rules live in core/validation.py
"""
