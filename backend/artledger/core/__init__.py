"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All rule functions are pure and deterministic (time is passed in, never read)

Design Decisions:
    - Functional core separated from imperative shell: services read records,
      ask core whether a transition is allowed, then perform the conditional writes
"""
