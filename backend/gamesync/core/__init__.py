"""Core Layer — pure domain logic, no IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, models/ or db/
    - Functions are pure and deterministic; Protocols describe the IO the shell provides

Design Decisions:
    - Functional core separated from imperative shell: the game processor and
      metadata pipeline call into these rules, never the other way around
"""
