"""吐槽台：写下吐槽、粉碎或焚烧，然后才能开始占卜。

历史只保存在内存里，进程重启后即丢失。
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

DEFAULT_RITUAL_COMPLAINT = "心中所念之事"
HISTORY_LIMIT = 20


class ComplaintStatus(str, Enum):
    PENDING = "PENDING"
    SHREDDED = "SHREDDED"
    BURNT = "BURNT"


class ComplaintNotDestroyed(RuntimeError):
    """吐槽还没有被粉碎或焚烧，不能开始占卜。"""


@dataclass
class Complaint:
    text: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:9])
    created_at: datetime = field(default_factory=datetime.now)
    status: ComplaintStatus = ComplaintStatus.PENDING

    @property
    def destroyed(self) -> bool:
        return self.status is not ComplaintStatus.PENDING


class ComplaintDesk:
    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self.history_limit = history_limit
        self.history: List[Complaint] = []
        self.current: Optional[Complaint] = None

    def add(self, text: str) -> Complaint:
        text = (text or "").strip()
        if not text:
            raise ValueError("吐槽内容不能为空")

        complaint = Complaint(text=text)
        self.current = complaint
        self.history.insert(0, complaint)
        del self.history[self.history_limit:]
        return complaint

    def destroy(self, status: ComplaintStatus, complaint: Optional[Complaint] = None) -> Complaint:
        """粉碎或焚烧一条吐槽，默认是当前那条。

        传入 complaint 时只处理这一条，即使它已经不是当前吐槽。
        """
        if status is ComplaintStatus.PENDING:
            raise ValueError("只能粉碎或焚烧吐槽")
        target = complaint or self.current
        if target is None:
            raise LookupError("还没有写下任何吐槽")
        target.status = status
        return target

    def ritual_complaint(self) -> str:
        """返回用于占卜的吐槽文本；没写过吐槽时用默认的心中所念之事。"""
        if self.current is None:
            return DEFAULT_RITUAL_COMPLAINT
        if not self.current.destroyed:
            raise ComplaintNotDestroyed("请先粉碎或焚烧你的烦恼！")
        return self.current.text

    def clear_current(self) -> None:
        self.current = None


__all__ = [
    "Complaint",
    "ComplaintDesk",
    "ComplaintStatus",
    "ComplaintNotDestroyed",
    "DEFAULT_RITUAL_COMPLAINT",
]
