"""掷茭编排器依赖的文案服务接口及其错误类型。"""

from __future__ import annotations

from typing import Protocol, Sequence

from .models import ThrowOutcome, VerdictCard


class FortuneServiceError(RuntimeError):
    """文案服务返回了错误或无法解析的结果。"""


class FortuneServiceUnavailable(FortuneServiceError):
    """文案服务不可用（未配置密钥等），调用不会被发出。"""


class FortuneServiceTimeout(FortuneServiceError):
    """文案服务没有在限定时间内给出结果。"""


class VerdictMismatchError(FortuneServiceError):
    """服务给出的结论与解签规则不一致。"""


class FortuneTextService(Protocol):
    async def comment_on_throw(self, complaint: str, outcome: ThrowOutcome, index: int) -> str:
        ...

    async def produce_card(self, complaint: str, outcomes: Sequence[ThrowOutcome]) -> VerdictCard:
        ...


__all__ = [
    "FortuneTextService",
    "FortuneServiceError",
    "FortuneServiceUnavailable",
    "FortuneServiceTimeout",
    "VerdictMismatchError",
]
