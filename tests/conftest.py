"""Shared fixtures for the divination bot test suite."""

import asyncio
import random
from typing import Dict, List, Optional, Sequence

import pytest

from divination.fallback import FallbackBank
from divination.models import CARD_SOURCE_SERVICE, SequencerPhase, ThrowOutcome, VerdictCard
from divination.sequencer import SequencerTimings
from divination.throws import classify
from utils import app_state


class ScriptedGenerator:
    """Throw generator that replays a fixed list of outcomes."""

    def __init__(self, outcomes: Sequence[ThrowOutcome]):
        self._outcomes = list(outcomes)

    def next(self) -> ThrowOutcome:
        return self._outcomes.pop(0)


class FakeFortuneService:
    """In-memory fortune text service with per-call delays and failures."""

    def __init__(
        self,
        comment_delays: Optional[Dict[int, float]] = None,
        comment_error: Optional[Exception] = None,
        card: Optional[VerdictCard] = None,
        card_delay: float = 0.0,
        card_error: Optional[Exception] = None,
    ):
        self.comment_delays = comment_delays or {}
        self.comment_error = comment_error
        self.card = card
        self.card_delay = card_delay
        self.card_error = card_error
        self.comment_calls: List[tuple] = []
        self.card_calls: List[tuple] = []

    async def comment_on_throw(self, complaint, outcome, index):
        self.comment_calls.append((complaint, outcome, index))
        await asyncio.sleep(self.comment_delays.get(index, 0.0))
        if self.comment_error is not None:
            raise self.comment_error
        return f"第{index + 1}次点评"

    async def produce_card(self, complaint, outcomes):
        self.card_calls.append((complaint, tuple(outcomes)))
        await asyncio.sleep(self.card_delay)
        if self.card_error is not None:
            raise self.card_error
        if self.card is not None:
            return self.card
        return VerdictCard(
            title="服务卡片",
            subtitle="来自服务的副标题",
            stamp="天意",
            interpretation="服务给出的解读",
            summary="服务给出的总结",
            verdict=classify(outcomes),
            source=CARD_SOURCE_SERVICE,
        )


class SnapshotRecorder:
    """Listener that keeps every snapshot it receives."""

    def __init__(self):
        self.snapshots = []

    async def __call__(self, snapshot):
        self.snapshots.append(snapshot)

    @property
    def phases(self):
        return [snapshot.phase for snapshot in self.snapshots]


@pytest.fixture
def fallback_bank():
    return FallbackBank.load(rng=random.Random(7))


@pytest.fixture
def fast_timings():
    return SequencerTimings(
        throw_dwell=0.0,
        finalize_delay=0.0,
        per_throw_timeout=0.5,
        final_card_timeout=0.5,
    )


@pytest.fixture
def make_service():
    return FakeFortuneService


@pytest.fixture
def scripted():
    return ScriptedGenerator


@pytest.fixture
def recorder():
    return SnapshotRecorder()


@pytest.fixture
def wait_for_phase():
    async def _wait(sequencer, phase: SequencerPhase, timeout: float = 1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while sequencer.phase is not phase:
            if loop.time() > deadline:
                raise AssertionError(f"sequencer stuck in {sequencer.phase}, expected {phase}")
            await asyncio.sleep(0.001)

    return _wait


@pytest.fixture(autouse=True)
def clean_app_state():
    app_state.clear_sessions()
    yield
    app_state.clear_sessions()
