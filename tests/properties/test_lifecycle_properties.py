"""Property-based tests for the server lifecycle state machine."""

import pytest
from hypothesis import given, strategies as st

from pgembed.exceptions import InvalidTransitionError
from pgembed.supervisor import LifecycleEvent, ServerState, transition
from pgembed.supervisor._models import _TRANSITIONS  # pyright: ignore[reportPrivateUsage]

states = st.sampled_from(list(ServerState))
events = st.sampled_from(list(LifecycleEvent))


@given(state=states)
def test_fail_reaches_failed(state: ServerState) -> None:
    """Property: FAIL moves every state except FAILED to FAILED."""
    if state is ServerState.FAILED:
        with pytest.raises(InvalidTransitionError):
            _ = transition(state, LifecycleEvent.FAIL)
    else:
        assert transition(state, LifecycleEvent.FAIL) is ServerState.FAILED


@given(state=states, event=events)
def test_transition_follows_table(state: ServerState, event: LifecycleEvent) -> None:
    """Property: non-FAIL events succeed exactly when the table allows them."""
    if event is LifecycleEvent.FAIL:
        return
    expected = _TRANSITIONS.get((state, event))
    if expected is None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            _ = transition(state, event)
        assert exc_info.value.state == state.value
        assert exc_info.value.event == event.value
    else:
        assert transition(state, event) is expected


@given(walk=st.lists(events, max_size=40))
def test_random_walk_stays_in_known_states(walk: list[LifecycleEvent]) -> None:
    """Property: any event sequence only visits states reachable through the table."""
    state = ServerState.UNINSTALLED
    for event in walk:
        try:
            state = transition(state, event)
        except InvalidTransitionError:
            continue
        assert state is ServerState.FAILED or state in _TRANSITIONS.values()


@given(walk=st.lists(events, max_size=40))
def test_running_requires_start(walk: list[LifecycleEvent]) -> None:
    """Property: RUNNING is only entered from STARTING."""
    state = ServerState.UNINSTALLED
    for event in walk:
        try:
            following = transition(state, event)
        except InvalidTransitionError:
            continue
        if following is ServerState.RUNNING:
            assert state is ServerState.STARTING
        state = following
