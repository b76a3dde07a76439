import pytest
from datetime import datetime, timedelta

import pytz

from training_portal.engine.state_machine import AttemptState, AttemptStateMachine, InvalidTransition


def test_state_machine_initialization():
    sm = AttemptStateMachine("in_progress")
    assert sm.state == AttemptState.IN_PROGRESS
    assert sm.is_open()


def test_complete_transition():
    sm = AttemptStateMachine(AttemptState.IN_PROGRESS)
    assert sm.transition(AttemptState.COMPLETED) == AttemptState.COMPLETED
    assert not sm.is_open()


def test_abandon_transition():
    sm = AttemptStateMachine(AttemptState.IN_PROGRESS)
    sm.transition("abandoned")
    assert sm.state == AttemptState.ABANDONED


@pytest.mark.parametrize("terminal", [AttemptState.COMPLETED, AttemptState.ABANDONED])
def test_terminal_states_reject_transitions(terminal):
    sm = AttemptStateMachine(terminal)
    for target in AttemptState:
        assert not sm.can_transition(target)
    with pytest.raises(InvalidTransition):
        sm.transition(AttemptState.IN_PROGRESS)


def test_unknown_state_rejected():
    with pytest.raises(ValueError):
        AttemptStateMachine("paused")


def test_deadline_includes_grace():
    started = datetime(2024, 5, 1, 9, 0, tzinfo=pytz.utc)
    sm = AttemptStateMachine("in_progress", started_at=started, time_limit_minutes=30, grace_seconds=30)
    assert sm.deadline() == started + timedelta(minutes=30, seconds=30)
    assert not sm.is_expired(started + timedelta(minutes=30, seconds=10))
    assert sm.is_expired(started + timedelta(minutes=31))


def test_no_time_limit_never_expires():
    started = datetime(2024, 5, 1, 9, 0, tzinfo=pytz.utc)
    sm = AttemptStateMachine("in_progress", started_at=started, time_limit_minutes=None)
    assert sm.deadline() is None
    assert not sm.is_expired(started + timedelta(days=3))
