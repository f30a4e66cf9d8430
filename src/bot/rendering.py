"""把仪式快照渲染成 Telegram 消息文本（HTML）。"""

from __future__ import annotations

from datetime import date
from html import escape
from typing import Iterable, Optional

from divination.complaints import Complaint, ComplaintStatus
from divination.models import THROWS_PER_RITUAL, RitualSnapshot, SequencerPhase, ThrowRecord, VerdictCard

RITUAL_TITLE = "<b>神圣仪式：赛博掷杯茭</b>"
PENDING_COMMENTARY = "神灵显化中..."
CARD_FOOTER = "本结果由「职场速效救心丸」提供"

_STATUS_MARKS = {
    ComplaintStatus.PENDING: "📝",
    ComplaintStatus.SHREDDED: "🔪 已粉碎",
    ComplaintStatus.BURNT: "🔥 已焚烧",
}


def _commentary(record: ThrowRecord) -> str:
    return escape(record.commentary) if record.commentary else PENDING_COMMENTARY


def _history_line(record: ThrowRecord) -> str:
    return f"第 {record.index + 1} 次：<b>{record.outcome.label}</b> · {_commentary(record)}"


def render_ritual(snapshot: RitualSnapshot) -> str:
    if snapshot.phase is SequencerPhase.IDLE:
        return "仪式已结束。写下新的吐槽，或者直接点「开始占卜」。"
    if snapshot.phase is SequencerPhase.COMPLETE and snapshot.card is not None:
        return render_card(snapshot.card, snapshot.complaint)

    lines = [
        RITUAL_TITLE,
        f"连续掷 {THROWS_PER_RITUAL} 次，诚心祈求上天指引（{snapshot.throw_count}/{THROWS_PER_RITUAL}）",
        "",
    ]

    # 正在展示的那一次不重复出现在历史里；掷出中的那一次还不能揭晓
    in_flight = snapshot.phase is SequencerPhase.THROW_IN_FLIGHT
    if in_flight:
        skipped = {snapshot.throw_count - 1}
    else:
        skipped = {snapshot.highlighted_index}
    for record in snapshot.throws:
        if record.index not in skipped:
            lines.append(_history_line(record))

    highlighted = snapshot.highlighted
    if in_flight:
        lines += ["", "🌀 冥想中..."]
    elif highlighted is not None:
        lines += [
            "",
            "<i>—— 啪嗒! ——</i>",
            f"<b>{highlighted.outcome.label}</b>",
            _commentary(highlighted),
        ]

    if snapshot.phase is SequencerPhase.FINALIZING:
        lines += ["", "⏳ <b>大师解签中</b>", "请耐心等待"]

    return "\n".join(lines)


def render_card(card: VerdictCard, complaint: str, issued_on: Optional[date] = None) -> str:
    issued_on = issued_on or date.today()
    return "\n".join(
        [
            f"<b>{escape(card.title)}</b>",
            f"<i>“ {escape(card.subtitle)} ”</i>",
            "",
            "您的吐槽：",
            f"<b>{escape(complaint)}</b>",
            "",
            escape(card.interpretation),
            "",
            f"<i>{escape(card.summary)}</i>",
            "",
            f"【{escape(card.stamp)}】",
            f"日期：{issued_on.isoformat()}",
            CARD_FOOTER,
        ]
    )


def render_history(complaints: Iterable[Complaint]) -> str:
    lines = [
        f"{_STATUS_MARKS[complaint.status]} {complaint.created_at:%H:%M} {escape(complaint.text)}"
        for complaint in complaints
    ]
    if not lines:
        return "还没有吐槽记录。"
    return "<b>吐槽记录</b>\n" + "\n".join(lines)
