# tests/admin_setup/test_transitions.py
# -*- coding: utf-8 -*-
import subprocess
from unittest.mock import MagicMock

import pytest

from admin_setup.errors import TransitionError
from admin_setup.preflight import Node
from admin_setup.state_store import MarkerStore
from admin_setup.transitions import LIFECYCLE_ORDER, LifecycleState, TransitionStateMachine

NODE = Node("admin.example.com", "example.com", "192.168.124.10")
STATE_NAMES = [
    "discovering",
    "discovered",
    "hardware-installing",
    "hardware-installed",
    "installing",
    "installed",
    "readying",
    "ready",
]


@pytest.fixture
def client():
    client = MagicMock()
    client.events = []
    client.transition.side_effect = lambda fqdn, state: client.events.append(("transition", state))
    client.run_chef_client.side_effect = lambda: client.events.append(("chef-client", None))
    return client


@pytest.fixture
def store(app_settings):
    return MarkerStore.from_settings(app_settings)


def test_lifecycle_order():
    assert [state.value for state in LIFECYCLE_ORDER] == STATE_NAMES


def test_run_visits_every_state_with_a_chef_run_after_each(client, store, app_settings):
    machine = TransitionStateMachine(client, store, app_settings, sleep_func=MagicMock())

    visited = machine.run(NODE)

    assert visited == LIFECYCLE_ORDER
    expected = []
    for name in STATE_NAMES:
        expected += [("transition", name), ("chef-client", None)]
    assert client.events == expected


def test_hook_runs_after_transition_and_before_chef(client, store, app_settings):
    def hook(node):
        client.events.append(("hook", node.fqdn))
        return True

    machine = TransitionStateMachine(
        client, store, app_settings, hooks={LifecycleState.INSTALLED: hook}, sleep_func=MagicMock()
    )
    machine.run(NODE)

    index = client.events.index(("hook", "admin.example.com"))
    assert client.events[index - 1] == ("transition", "installed")
    assert client.events[index + 1] == ("chef-client", None)


@pytest.mark.parametrize("hook_result", [False, RuntimeError("dhcpd not running")])
def test_failing_hook_stops_before_later_states(client, store, app_settings, hook_result):
    def hook(node):
        if isinstance(hook_result, Exception):
            raise hook_result
        return hook_result

    machine = TransitionStateMachine(client, store, app_settings, sleep_func=MagicMock())
    machine.register_hook(LifecycleState.HARDWARE_INSTALLED, hook)

    with pytest.raises(TransitionError, match="Sanity check for transitioning to hardware-installed failed!") as excinfo:
        machine.run(NODE)

    assert excinfo.value.state == "hardware-installed"
    transitions = [state for kind, state in client.events if kind == "transition"]
    assert transitions == STATE_NAMES[:4]
    assert client.events[-1] == ("transition", "hardware-installed")


def test_transition_failure(client, store, app_settings):
    client.transition.side_effect = [None, subprocess.CalledProcessError(1, ["crowbar"])]
    machine = TransitionStateMachine(client, store, app_settings, sleep_func=MagicMock())

    with pytest.raises(TransitionError, match="Transition to discovered failed!") as excinfo:
        machine.run(NODE)

    assert excinfo.value.state == "discovered"
    assert client.transition.call_count == 2


def test_chef_run_failure(client, store, app_settings):
    client.run_chef_client.side_effect = subprocess.CalledProcessError(1, ["chef-client"])
    machine = TransitionStateMachine(client, store, app_settings, sleep_func=MagicMock())

    with pytest.raises(TransitionError, match="Chef run for discovering transition failed!"):
        machine.run(NODE)


def test_waits_for_chef_client_lock(client, store, app_settings):
    lock = app_settings.paths.chef_client_lock
    lock.parent.mkdir(parents=True, exist_ok=True)
    lock.write_text("", encoding="utf-8")

    def fake_sleep(seconds):
        client.events.append(("sleep", seconds))
        lock.unlink()

    machine = TransitionStateMachine(client, store, app_settings, sleep_func=fake_sleep)
    machine.advance(NODE, LifecycleState.DISCOVERING)

    assert client.events[:2] == [
        ("sleep", app_settings.timing.lock_poll_interval),
        ("transition", "discovering"),
    ]
