"""Sync Job State Machine — legal transitions for SyncJob records.

Invariants:
    - PENDING -> RUNNING -> COMPLETED | FAILED
    - PENDING -> FAILED is allowed (validation failed before the job started)
    - COMPLETED and FAILED are terminal
"""

from gamesync.core.domain_types import SyncJobStatus
from gamesync.core.errors import InvalidJobTransitionError

_TRANSITIONS: dict[SyncJobStatus, frozenset[SyncJobStatus]] = {
    SyncJobStatus.PENDING: frozenset({SyncJobStatus.RUNNING, SyncJobStatus.FAILED}),
    SyncJobStatus.RUNNING: frozenset({SyncJobStatus.COMPLETED, SyncJobStatus.FAILED}),
    SyncJobStatus.COMPLETED: frozenset(),
    SyncJobStatus.FAILED: frozenset(),
}

RECOVERY_MESSAGE = (
    "Sync interrupted by application restart. Please trigger a new sync."
)


def is_terminal(status: str | SyncJobStatus) -> bool:
    return not _TRANSITIONS[SyncJobStatus(status)]


def can_transition(current: str | SyncJobStatus, target: str | SyncJobStatus) -> bool:
    return SyncJobStatus(target) in _TRANSITIONS[SyncJobStatus(current)]


def ensure_transition(current: str | SyncJobStatus, target: str | SyncJobStatus) -> None:
    if not can_transition(current, target):
        raise InvalidJobTransitionError(
            SyncJobStatus(current).value, SyncJobStatus(target).value,
        )
