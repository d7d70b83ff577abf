"""Services — orchestration shell over core logic and infrastructure adapters.

Invariants:
    - Services receive repositories, registries and state objects by injection
    - No service reaches for a module-level singleton
"""
