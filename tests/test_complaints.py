"""Tests for divination.complaints: ComplaintDesk."""

import pytest

from divination.complaints import (
    DEFAULT_RITUAL_COMPLAINT,
    ComplaintDesk,
    ComplaintNotDestroyed,
    ComplaintStatus,
)


@pytest.fixture
def desk():
    return ComplaintDesk(history_limit=3)


class TestComplaintDesk:
    def test_ritual_without_complaint_uses_default(self, desk):
        assert desk.ritual_complaint() == DEFAULT_RITUAL_COMPLAINT

    def test_blank_complaint_rejected(self, desk):
        with pytest.raises(ValueError):
            desk.add("   ")
        assert desk.history == []

    def test_pending_complaint_blocks_ritual(self, desk):
        desk.add("老板画饼")
        with pytest.raises(ComplaintNotDestroyed, match="粉碎或焚烧"):
            desk.ritual_complaint()

    @pytest.mark.parametrize("status", [ComplaintStatus.SHREDDED, ComplaintStatus.BURNT])
    def test_destroyed_complaint_is_used(self, desk, status):
        desk.add("  老板画饼 ")
        complaint = desk.destroy(status)
        assert complaint.status is status
        assert complaint.destroyed
        assert desk.ritual_complaint() == "老板画饼"

    def test_destroy_requires_a_complaint(self, desk):
        with pytest.raises(LookupError):
            desk.destroy(ComplaintStatus.BURNT)

    def test_destroy_given_complaint_after_it_was_replaced(self, desk):
        first = desk.add("开会")
        desk.clear_current()
        second = desk.add("加班")

        destroyed = desk.destroy(ComplaintStatus.BURNT, first)

        assert destroyed is first
        assert first.status is ComplaintStatus.BURNT
        assert second.status is ComplaintStatus.PENDING
        with pytest.raises(ComplaintNotDestroyed):
            desk.ritual_complaint()

    def test_destroy_rejects_pending_status(self, desk):
        desk.add("开会")
        with pytest.raises(ValueError):
            desk.destroy(ComplaintStatus.PENDING)

    def test_history_is_newest_first_and_bounded(self, desk):
        for text in ["一", "二", "三", "四"]:
            desk.add(text)
        assert [c.text for c in desk.history] == ["四", "三", "二"]
        assert desk.current.text == "四"

    def test_clear_current_keeps_history(self, desk):
        desk.add("加班")
        desk.clear_current()
        assert desk.current is None
        assert len(desk.history) == 1
        assert desk.ritual_complaint() == DEFAULT_RITUAL_COMPLAINT
