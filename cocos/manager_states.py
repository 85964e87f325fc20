"""Lifecycle states and statuses reported by the manager."""

from enum import IntEnum

__all__ = [
    "ManagerState",
    "ManagerStatus",
    "manager_state_name",
    "manager_status_name",
]


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


class _LabelledEnum(IntEnum):
    @property
    def label(self) -> str:
        """The CamelCase name used when the value is printed."""
        return _camel(self.name)

    def __str__(self) -> str:
        return self.label


class ManagerState(_LabelledEnum):
    """What the manager is doing with a computation."""

    VM_PROVISION = 0
    STOP_COMPUTATION_RUN = 1
    VM_RUNNING = 2


class ManagerStatus(_LabelledEnum):
    """Outcome reported alongside a manager state."""

    STARTING = 0
    STOPPED = 1
    WARNING = 2
    DISCONNECTED = 3
    FAILED = 4


def manager_state_name(value: int) -> str:
    """Return the printable name of a state, or ``ManagerState(n)`` if unknown."""
    try:
        return ManagerState(value).label
    except ValueError:
        return f"ManagerState({int(value)})"


def manager_status_name(value: int) -> str:
    """Return the printable name of a status, or ``ManagerStatus(n)`` if unknown."""
    try:
        return ManagerStatus(value).label
    except ValueError:
        return f"ManagerStatus({int(value)})"