"""Services Layer — orchestration between the pure core and the repositories.

Invariants:
    - Gate checks run on a fresh read, immediately before the mutation
    - Side effects that must not block the caller go through BackgroundTaskRunner
"""
