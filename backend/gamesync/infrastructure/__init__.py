"""Infrastructure — IO adapters: database, logging, HTTP, connectors, providers, repositories.

Invariants:
    - Every adapter satisfies a Protocol declared in core/
    - No business rule lives here; adapters translate and persist

Design Decisions:
    - One file per external system so a provider can be swapped without touching services
"""
