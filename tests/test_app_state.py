"""Tests for utils.app_state: per-chat sequencers and desks."""

import pytest

from divination.sequencer import SequencerTimings
from utils import app_state


def test_sequencer_requires_configuration():
    app_state.configure_ritual(None, None)
    with pytest.raises(AssertionError):
        app_state.get_sequencer(1)


def test_sequencers_are_per_chat(fallback_bank):
    timings = SequencerTimings(throw_dwell=0.1)
    app_state.configure_ritual(None, fallback_bank, timings)

    first = app_state.get_sequencer(1)
    assert app_state.get_sequencer(1) is first
    assert app_state.get_sequencer(2) is not first
    assert first.timings is timings
    assert len(app_state.all_sequencers()) == 2


def test_desks_are_per_chat():
    desk = app_state.get_desk(10)
    desk.add("加班")
    assert app_state.get_desk(10) is desk
    assert app_state.get_desk(11).current is None


def test_clear_sessions():
    app_state.get_desk(10).add("加班")
    app_state.clear_sessions()
    assert app_state.get_desk(10).current is None
