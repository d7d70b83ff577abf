"""Pydantic Schemas — request/response validation for API endpoints and push payloads.

Invariants:
    - Schemas validate at system boundary (push payloads, API requests and responses)
    - Domain types from core/ used for enum fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
