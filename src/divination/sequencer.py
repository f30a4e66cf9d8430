"""掷杯茭仪式编排器。

编排器驱动整个仪式：三次掷茭、每次掷茭的点评、最后的结论卡片。
所有状态迁移都在同一个 asyncio 事件循环里完成，迁移本身不会被打断；
需要等待的地方（停留计时、点评请求、解签前的停顿、卡片请求）都是独立的任务。

文案服务出任何问题都不会卡住仪式：每次调用都有超时，失败后直接换成兜底文案。
重置时会取消旧会话的全部任务，迟到的结果按会话身份丢弃。
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set, TypeVar

from .fallback import FallbackBank
from .models import (
    IDLE_SNAPSHOT,
    RitualSession,
    RitualSnapshot,
    SequencerPhase,
    ThrowOutcome,
    ThrowRecord,
    VerdictCard,
)
from .service import (
    FortuneServiceError,
    FortuneServiceTimeout,
    FortuneServiceUnavailable,
    FortuneTextService,
    VerdictMismatchError,
)
from .throws import ThrowGenerator, classify

logger = logging.getLogger(__name__)

T = TypeVar("T")

SnapshotListener = Callable[[RitualSnapshot], Awaitable[None]]

DEFAULT_THROW_DWELL = 0.8
DEFAULT_FINALIZE_DELAY = 8.0
DEFAULT_PER_THROW_TIMEOUT = 5.0
DEFAULT_FINAL_CARD_TIMEOUT = 10.0


def _env_seconds(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using %.1f", name, raw, default)
        return default
    if value < 0:
        logger.warning("Negative %s=%r, using %.1f", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class SequencerTimings:
    """仪式各阶段的时间参数，单位为秒。"""

    throw_dwell: float = DEFAULT_THROW_DWELL
    finalize_delay: float = DEFAULT_FINALIZE_DELAY
    per_throw_timeout: float = DEFAULT_PER_THROW_TIMEOUT
    final_card_timeout: float = DEFAULT_FINAL_CARD_TIMEOUT

    @classmethod
    def from_env(cls) -> "SequencerTimings":
        return cls(
            throw_dwell=_env_seconds("THROW_DWELL_SECONDS", DEFAULT_THROW_DWELL),
            finalize_delay=_env_seconds("FINALIZE_DELAY_SECONDS", DEFAULT_FINALIZE_DELAY),
            per_throw_timeout=_env_seconds("PER_THROW_TIMEOUT_SECONDS", DEFAULT_PER_THROW_TIMEOUT),
            final_card_timeout=_env_seconds("FINAL_CARD_TIMEOUT_SECONDS", DEFAULT_FINAL_CARD_TIMEOUT),
        )


class DivinationSequencer:
    """一次只持有一个仪式会话的状态机。

    listener 在每次状态迁移和每次点评到达后收到最新快照。
    listener 内不要回调编排器的方法，快照推送是串行的。
    """

    def __init__(
        self,
        service: Optional[FortuneTextService],
        fallback: FallbackBank,
        *,
        generator: Optional[ThrowGenerator] = None,
        timings: Optional[SequencerTimings] = None,
        listener: Optional[SnapshotListener] = None,
    ) -> None:
        self._service = service
        self._fallback = fallback
        self._generator = generator or ThrowGenerator()
        self.timings = timings or SequencerTimings()
        self._listener = listener
        self._session: Optional[RitualSession] = None
        self._tasks: Set[asyncio.Task] = set()
        self._emit_lock = asyncio.Lock()

    @property
    def phase(self) -> SequencerPhase:
        if self._session is None:
            return SequencerPhase.IDLE
        return self._session.phase

    @property
    def listener(self) -> Optional[SnapshotListener]:
        return self._listener

    def set_listener(self, listener: Optional[SnapshotListener]) -> None:
        self._listener = listener

    def snapshot(self) -> RitualSnapshot:
        if self._session is None:
            return IDLE_SNAPSHOT
        return self._session.snapshot()

    async def begin_ritual(self, complaint: str) -> bool:
        if self._session is not None:
            logger.debug(
                "Ignoring begin_ritual: ritual %s is %s",
                self._session.session_id,
                self._session.phase.value,
            )
            return False

        session = RitualSession(complaint=complaint)
        self._session = session
        logger.info("Ritual %s started (complaint length=%d)", session.session_id, len(complaint))
        await self._emit(session)
        return True

    async def request_throw(self) -> bool:
        session = self._session
        if session is None:
            logger.debug("Ignoring throw request: no ritual in progress")
            return False
        if session.sealed:
            logger.debug("Ignoring throw request: ritual %s already has all throws", session.session_id)
            return False
        if session.phase is not SequencerPhase.AWAITING_THROW:
            logger.debug(
                "Ignoring throw request: ritual %s is %s",
                session.session_id,
                session.phase.value,
            )
            return False

        index = len(session.throws)
        outcome = self._generator.next()
        session.throws.append(ThrowRecord(index=index, outcome=outcome))
        session.phase = SequencerPhase.THROW_IN_FLIGHT
        if session.sealed:
            session.verdict = classify(session.outcomes())
        logger.info("Ritual %s throw %d: %s", session.session_id, index + 1, outcome.value)

        self._spawn(self._fetch_commentary(session, index, outcome))
        self._spawn(self._settle(session, index))
        await self._emit(session)
        return True

    async def reset(self) -> None:
        session = self._session
        self._session = None

        current = asyncio.current_task()
        tasks = list(self._tasks)
        self._tasks.clear()
        for task in tasks:
            if task is not current:
                task.cancel()

        if session is not None:
            logger.info(
                "Ritual %s reset during %s (%d pending tasks cancelled)",
                session.session_id,
                session.phase.value,
                len(tasks),
            )
        await self._emit(None)

    async def drain(self) -> RitualSnapshot:
        """等待当前会话所有挂起的任务结束，返回最终快照。"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self.snapshot()

    # 仪式内部步骤

    def _is_current(self, session: RitualSession) -> bool:
        return self._session is session

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Ritual task failed", exc_info=exc)

    async def _settle(self, session: RitualSession, index: int) -> None:
        await asyncio.sleep(self.timings.throw_dwell)
        if not self._is_current(session):
            return

        session.phase = SequencerPhase.THROW_SETTLED
        session.highlighted_index = index
        await self._emit(session)

        if not session.sealed:
            if self._is_current(session):
                session.phase = SequencerPhase.AWAITING_THROW
                await self._emit(session)
            return

        await asyncio.sleep(self.timings.finalize_delay)
        if not self._is_current(session):
            return

        session.highlighted_index = None
        session.phase = SequencerPhase.FINALIZING
        await self._emit(session)

        card = await self._obtain_card(session)
        if not self._is_current(session):
            logger.info("Dropping card for discarded ritual %s", session.session_id)
            return

        session.card = card
        session.phase = SequencerPhase.COMPLETE
        logger.info(
            "Ritual %s complete: %s (%s card)",
            session.session_id,
            card.verdict.value,
            card.source,
        )
        await self._emit(session)

    async def _fetch_commentary(self, session: RitualSession, index: int, outcome: ThrowOutcome) -> None:
        try:
            text = await self._call_service(
                "throw commentary",
                self.timings.per_throw_timeout,
                lambda service: service.comment_on_throw(session.complaint, outcome, index),
            )
            if not isinstance(text, str):
                raise FortuneServiceError(f"文案服务返回的点评类型不对: {type(text).__name__}")
            text = text.strip()
            if not text:
                raise FortuneServiceError("文案服务返回了空的点评")
        except FortuneServiceError as exc:
            logger.warning(
                "Throw %d of ritual %s uses fallback text (%s: %s)",
                index + 1,
                session.session_id,
                type(exc).__name__,
                exc,
            )
            text = self._fallback.throw_text(outcome)

        if not self._is_current(session):
            logger.debug("Dropping late commentary for throw %d of ritual %s", index + 1, session.session_id)
            return

        session.throws[index] = session.throws[index].with_commentary(text)
        await self._emit(session)

    async def _obtain_card(self, session: RitualSession) -> VerdictCard:
        verdict = session.verdict
        if verdict is None:
            verdict = session.verdict = classify(session.outcomes())

        try:
            card = await self._call_service(
                "final card",
                self.timings.final_card_timeout,
                lambda service: service.produce_card(session.complaint, session.outcomes()),
            )
            if not isinstance(card, VerdictCard):
                raise FortuneServiceError(f"文案服务返回的卡片类型不对: {type(card).__name__}")
            if card.verdict is not verdict:
                raise VerdictMismatchError(
                    f"服务给出的结论 {card.verdict.value} 与规则结论 {verdict.value} 不一致"
                )
            return card
        except FortuneServiceError as exc:
            logger.warning(
                "Ritual %s uses fallback card for %s (%s: %s)",
                session.session_id,
                verdict.value,
                type(exc).__name__,
                exc,
            )
        return self._fallback.card_for(verdict)

    async def _call_service(
        self,
        what: str,
        timeout: float,
        call: Callable[[FortuneTextService], Awaitable[T]],
    ) -> T:
        service = self._service
        if service is None:
            raise FortuneServiceUnavailable("文案服务未配置")

        try:
            return await asyncio.wait_for(call(service), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise FortuneServiceTimeout(f"{what} 超过 {timeout:.1f} 秒未返回") from exc
        except FortuneServiceError:
            raise
        except Exception as exc:
            logger.exception("Unexpected %s failure", what)
            raise FortuneServiceError(f"{what} failed: {exc}") from exc

    async def _emit(self, session: Optional[RitualSession]) -> None:
        if self._listener is None:
            return
        async with self._emit_lock:
            if session is not None and not self._is_current(session):
                return
            snapshot = self.snapshot()
            try:
                await self._listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed in phase %s", snapshot.phase.value)


__all__ = ["DivinationSequencer", "SequencerTimings", "SnapshotListener"]
