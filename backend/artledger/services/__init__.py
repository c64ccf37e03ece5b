"""Services Layer — the three ownership operations, reads, retry and dispatch.

Invariants:
    - Services read records, ask core rules for a decision, then issue conditional writes
    - No service keeps mutable state between calls; collaborators arrive via ServiceContext

Design Decisions:
    - One file per operation for locality
    - Operation dispatch uses an explicit dict mapping (no auto-discovery)
"""
