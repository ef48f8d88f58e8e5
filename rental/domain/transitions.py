"""
Contract status state machine.

    PENDING ──> ONGOING ──> COMPLETED
       │           │
       │           └──> OVERDUE ──> CANCELLED
       └──> CANCELLED

PENDING and OVERDUE only resolve towards activation or cancellation.
ONGOING is the only status that can complete.  OVERDUE can never go back
to ONGOING.  COMPLETED and CANCELLED are terminal.

``validate_transition`` is a pure function of (current, requested); every
status change in the application goes through it.
"""

from __future__ import annotations

from .enums import CONTRACT_TRANSITIONS, TERMINAL_STATUSES, ContractStatus
from .exceptions import InvalidTransition


def allowed_transitions(status: ContractStatus) -> frozenset[ContractStatus]:
    return frozenset(CONTRACT_TRANSITIONS.get(ContractStatus(status), set()))


def is_terminal(status: ContractStatus) -> bool:
    return ContractStatus(status) in TERMINAL_STATUSES


def validate_transition(current: ContractStatus, requested: ContractStatus) -> None:
    """Raise ``InvalidTransition`` unless *current* -> *requested* is legal."""
    current = ContractStatus(current)
    requested = ContractStatus(requested)

    if current == requested:
        raise InvalidTransition(
            f"Contract already has status {current.value}",
            details={"current": current.value, "requested": requested.value},
        )
    if is_terminal(current):
        raise InvalidTransition(
            f"Contract with status {current.value} cannot be modified; "
            "this status is terminal",
            details={"current": current.value, "requested": requested.value},
        )
    allowed = allowed_transitions(current)
    if requested not in allowed:
        raise InvalidTransition(
            f"Cannot transition from {current.value} to {requested.value}; "
            f"allowed: {', '.join(sorted(s.value for s in allowed))}",
            details={"current": current.value, "requested": requested.value},
        )
