"""FactSnap Application Package — location-scoped questions, polls and responses.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
