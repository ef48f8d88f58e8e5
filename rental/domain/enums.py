"""Domain enumerations and state-transition rules."""

import enum


class ContractStatus(str, enum.Enum):
    PENDING = "PENDING"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


# State machine: maps current status -> set of valid next statuses
CONTRACT_TRANSITIONS: dict[ContractStatus, set[ContractStatus]] = {
    ContractStatus.PENDING: {ContractStatus.ONGOING, ContractStatus.CANCELLED},
    ContractStatus.ONGOING: {ContractStatus.COMPLETED, ContractStatus.OVERDUE},
    ContractStatus.OVERDUE: {ContractStatus.CANCELLED},
    ContractStatus.COMPLETED: set(),
    ContractStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset({ContractStatus.COMPLETED, ContractStatus.CANCELLED})

# Statuses that hold a vehicle for their interval
NON_TERMINAL_STATUSES = frozenset(set(ContractStatus) - TERMINAL_STATUSES)


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    RENTED = "RENTED"
    BROKEN_DOWN = "BROKEN_DOWN"
