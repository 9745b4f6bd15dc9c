# Overview: Optional order workflow policy; a transition table the caller may enforce.

"""
Order Lifecycle Policy

================================================================================
PURPOSE: Let a caller enforce a stricter workflow than the order store does
================================================================================

OrderService accepts any known status as the next one and only guarantees
the audit trail. A screen that wants to guide staff along the usual path can
check a move here first and refuse it before calling update_status().

STATE MACHINE:
    placed -> fabric_received -> cutting -> stitching -> trial
           -> alterations -> completed -> ready -> delivered

    - Forward moves may skip steps (e.g. placed -> cutting when the client
      brought fabric in advance).
    - trial <-> alterations may repeat.
    - cancelled is reachable from every non-terminal state.
    - delivered and cancelled are terminal.

================================================================================
"""

from __future__ import annotations

from ..catalog import (
    ORDER_STATUSES,
    STATUS_ALTERATIONS,
    STATUS_CANCELLED,
    STATUS_TRIAL,
    TERMINAL_STATUSES,
)
from ..errors import ValidationError


# Statuses on the forward path, in order
WORKFLOW_PATH = [s for s in ORDER_STATUSES if s != STATUS_CANCELLED]

# Backward moves allowed on top of forward ones
REWORK_TRANSITIONS = {
    (STATUS_ALTERATIONS, STATUS_TRIAL),
}


class LifecycleError(ValidationError):
    """
    Raised when a status move violates the workflow policy.

    This is a domain error, not a technical error.
    """
    pass


def validate_status(status: str) -> None:
    if status not in ORDER_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check a move against the workflow policy.

    Same-state moves are allowed (a note-only history entry).
    """
    validate_status(from_status)
    validate_status(to_status)

    if from_status == to_status:
        return from_status not in TERMINAL_STATUSES
    if from_status in TERMINAL_STATUSES:
        return False
    if to_status == STATUS_CANCELLED:
        return True
    if (from_status, to_status) in REWORK_TRANSITIONS:
        return True

    return WORKFLOW_PATH.index(to_status) > WORKFLOW_PATH.index(from_status)


def validate_transition(from_status: str, to_status: str) -> None:
    if not can_transition(from_status, to_status):
        raise LifecycleError(f"Cannot move order from '{from_status}' to '{to_status}'")


def allowed_next_statuses(from_status: str) -> list[str]:
    """Statuses a guided screen should offer next, in workflow order."""
    validate_status(from_status)
    return [s for s in ORDER_STATUSES if s != from_status and can_transition(from_status, s)]


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES

