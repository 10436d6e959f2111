"""Tests for the shim refresh scheduler."""

from unittest.mock import patch

import pytest

from claudx.shims.refresh import REFRESH_INTERVAL, RefreshScheduler, TimestampStore

NOW = 1_700_000_000.0  # seconds
NOW_MS = int(NOW * 1000)


class FakeStore:
    """In-memory TimestampStore."""

    def __init__(self, value=None):
        self.value = value

    def read(self):
        return self.value

    def write(self, value):
        self.value = value


@pytest.fixture
def mock_shim_manager():
    """Patch the ShimManager used by the scheduler."""
    with patch("claudx.shims.refresh.ShimManager") as mock_cls:
        yield mock_cls.return_value


def make_scheduler(tmp_path, store, shim_all=False):
    return RefreshScheduler(tmp_path, shim_all=shim_all, clock=lambda: NOW, store=store)


class TestTimestampStore:
    """Tests for the file-backed timestamp store."""

    def test_missing_file(self, tmp_path):
        """Test a missing file reads as None."""
        assert TimestampStore(tmp_path / ".last_update").read() is None

    def test_write_then_read(self, tmp_path):
        """Test the stamp is stored as epoch milliseconds text."""
        store = TimestampStore(tmp_path / "shims" / ".last_update")
        store.write(NOW_MS)

        assert (tmp_path / "shims" / ".last_update").read_text() == str(NOW_MS)
        assert store.read() == NOW_MS

    def test_garbage_reads_as_none(self, tmp_path):
        """Test an unparsable stamp is treated as missing."""
        path = tmp_path / ".last_update"
        path.write_text("not-a-number")

        assert TimestampStore(path).read() is None

    def test_default_location(self, tmp_path):
        """Test the scheduler keeps its stamp in the shim directory."""
        scheduler = RefreshScheduler(tmp_path)

        assert scheduler.store.path == tmp_path / "shims" / ".last_update"


class TestShouldUpdate:
    """Tests for staleness decisions."""

    def test_no_stamp(self, tmp_path):
        """Test a missing stamp requires an update."""
        assert make_scheduler(tmp_path, FakeStore()).should_update()

    def test_recent_stamp(self, tmp_path):
        """Test a stamp inside the interval is fresh."""
        store = FakeStore(NOW_MS - 60_000)

        assert not make_scheduler(tmp_path, store).should_update()

    def test_old_stamp(self, tmp_path):
        """Test a stamp older than 24 hours is stale."""
        store = FakeStore(NOW_MS - REFRESH_INTERVAL - 1)

        assert make_scheduler(tmp_path, store).should_update()

    def test_exactly_at_interval(self, tmp_path):
        """Test the boundary itself is still fresh."""
        store = FakeStore(NOW_MS - REFRESH_INTERVAL)

        assert not make_scheduler(tmp_path, store).should_update()


class TestUpdateShims:
    """Tests for regenerating shims."""

    def test_selective_mode_installs_available_common_tools(self, tmp_path, mock_shim_manager):
        """Test only common tools found on PATH are installed."""
        mock_shim_manager.find_executable_path.side_effect = (
            lambda name: f"/usr/bin/{name}" if name in ("gh", "jq") else None
        )
        store = FakeStore()

        assert make_scheduler(tmp_path, store).update_shims() is True

        mock_shim_manager.install_shims.assert_called_once_with(["gh", "jq"])
        assert store.value == NOW_MS

    def test_shim_all_installs_everything(self, tmp_path, mock_shim_manager):
        """Test shim_all delegates discovery to the shim manager."""
        store = FakeStore()

        make_scheduler(tmp_path, store, shim_all=True).update_shims()

        mock_shim_manager.install_shims.assert_called_once_with()
        mock_shim_manager.find_executable_path.assert_not_called()
        assert store.value == NOW_MS

    def test_failure_keeps_old_stamp(self, tmp_path, mock_shim_manager):
        """Test a failed refresh is retried on the next launch."""
        mock_shim_manager.install_shims.side_effect = OSError("read-only file system")
        store = FakeStore(123)

        assert make_scheduler(tmp_path, store, shim_all=True).update_shims() is False
        assert store.value == 123


class TestEnsureUpdated:
    """Tests for the combined check-and-refresh."""

    def test_fresh_shims_are_left_alone(self, tmp_path, mock_shim_manager):
        """Test no install happens inside the interval."""
        store = FakeStore(NOW_MS)

        assert make_scheduler(tmp_path, store).ensure_updated() is True
        mock_shim_manager.install_shims.assert_not_called()

    def test_stale_shims_are_refreshed(self, tmp_path, mock_shim_manager):
        """Test an install happens once the stamp expires."""
        store = FakeStore(NOW_MS - REFRESH_INTERVAL - 1)

        assert make_scheduler(tmp_path, store, shim_all=True).ensure_updated() is True
        mock_shim_manager.install_shims.assert_called_once()
        assert store.value == NOW_MS

    def test_force_ignores_fresh_stamp(self, tmp_path, mock_shim_manager):
        """Test force always refreshes."""
        store = FakeStore(NOW_MS)

        make_scheduler(tmp_path, store, shim_all=True).ensure_updated(force=True)

        mock_shim_manager.install_shims.assert_called_once()

    def test_reports_failure(self, tmp_path, mock_shim_manager):
        """Test a failed refresh is reported to the caller."""
        mock_shim_manager.install_shims.side_effect = OSError("disk full")

        assert make_scheduler(tmp_path, FakeStore(), shim_all=True).ensure_updated() is False
