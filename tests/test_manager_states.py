import pytest

from cocos.manager_states import (
    ManagerState,
    ManagerStatus,
    manager_state_name,
    manager_status_name,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (ManagerState.VM_PROVISION, "VmProvision"),
        (ManagerState.STOP_COMPUTATION_RUN, "StopComputationRun"),
        (ManagerState.VM_RUNNING, "VmRunning"),
        (3, "ManagerState(3)"),
        (100, "ManagerState(100)"),
    ],
)
def test_manager_state_name(value, expected):
    assert manager_state_name(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (ManagerStatus.STARTING, "Starting"),
        (ManagerStatus.STOPPED, "Stopped"),
        (ManagerStatus.WARNING, "Warning"),
        (ManagerStatus.DISCONNECTED, "Disconnected"),
        (5, "ManagerStatus(5)"),
        (100, "ManagerStatus(100)"),
    ],
)
def test_manager_status_name(value, expected):
    assert manager_status_name(value) == expected


def test_str_of_members_matches_name_functions():
    assert str(ManagerState.VM_RUNNING) == manager_state_name(ManagerState.VM_RUNNING)
    assert str(ManagerStatus.FAILED) == manager_status_name(ManagerStatus.FAILED)
    assert manager_status_name(ManagerStatus.FAILED) == "Failed"


def test_plain_ints_follow_declaration_order():
    assert [manager_state_name(i) for i in range(3)] == [
        "VmProvision",
        "StopComputationRun",
        "VmRunning",
    ]
    assert [manager_status_name(i) for i in range(5)] == [
        "Starting",
        "Stopped",
        "Warning",
        "Disconnected",
        "Failed",
    ]