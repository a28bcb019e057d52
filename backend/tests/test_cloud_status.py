"""Tests for cloud status derivation."""

import pytest

from agent_claim.services.cloud_status import CloudStatus, CloudStatusTracker, can_be_claimed


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (CloudStatus.AVAILABLE, True),
        (CloudStatus.OFFLINE, True),
        (CloudStatus.INDIRECT, True),
        (CloudStatus.BANNED, False),
        (CloudStatus.ONLINE, False),
    ],
)
def test_can_be_claimed(status, expected):
    assert can_be_claimed(status) is expected


class TestCloudStatusTracker:
    def test_unclaimed_is_available(self):
        assert CloudStatusTracker().status() == CloudStatus.AVAILABLE

    def test_claimed_disconnected_is_offline(self):
        tracker = CloudStatusTracker()
        tracker.mark_claimed("claimed-1")
        assert tracker.status() == CloudStatus.OFFLINE

    def test_claimed_connected_is_online(self):
        tracker = CloudStatusTracker()
        tracker.mark_claimed("claimed-1", url="https://cloud.example.com")
        tracker.mark_connected()

        assert tracker.status() == CloudStatus.ONLINE
        snapshot = tracker.snapshot()
        assert snapshot.status == "online"
        assert snapshot.claim_id == "claimed-1"
        assert snapshot.url == "https://cloud.example.com"

    def test_connected_without_claim_is_not_online(self):
        tracker = CloudStatusTracker()
        tracker.mark_connected()
        assert tracker.status() == CloudStatus.AVAILABLE

    def test_indirect(self):
        tracker = CloudStatusTracker()
        tracker.set_indirect(True)
        assert tracker.status() == CloudStatus.INDIRECT

    def test_banned_wins(self):
        tracker = CloudStatusTracker()
        tracker.mark_claimed("claimed-1")
        tracker.mark_connected()
        tracker.mark_banned("node deleted")

        assert tracker.status() == CloudStatus.BANNED
        assert tracker.snapshot().reason == "node deleted"

    def test_disconnect_records_reason(self):
        tracker = CloudStatusTracker()
        tracker.mark_claimed("claimed-1")
        tracker.mark_connected()
        tracker.mark_disconnected("connection reset")

        snapshot = tracker.snapshot()
        assert snapshot.status == "offline"
        assert snapshot.reason == "connection reset"
        assert snapshot.age >= 0

    def test_load_claimed_id(self, tmp_path):
        path = tmp_path / "cloud.d" / "claimed_id"
        path.parent.mkdir()
        path.write_text("claimed-7\n")
        tracker = CloudStatusTracker(claimed_id_path=path)

        assert tracker.load_claimed_id() == "claimed-7"
        assert tracker.status() == CloudStatus.OFFLINE

    def test_load_claimed_id_missing_file(self, tmp_path):
        tracker = CloudStatusTracker(claimed_id_path=tmp_path / "cloud.d" / "claimed_id")
        assert tracker.load_claimed_id() is None
        assert tracker.status() == CloudStatus.AVAILABLE


class TestWaitForOnline:
    @pytest.mark.asyncio
    async def test_returns_immediately_when_online(self):
        tracker = CloudStatusTracker()
        tracker.mark_claimed("claimed-1")
        tracker.mark_connected()

        assert await tracker.wait_for_online(timeout=5) == CloudStatus.ONLINE

    @pytest.mark.asyncio
    async def test_times_out_with_last_status(self):
        tracker = CloudStatusTracker()
        tracker.mark_claimed("claimed-1")

        status = await tracker.wait_for_online(timeout=0.05, poll_interval=0.01)

        assert status == CloudStatus.OFFLINE
