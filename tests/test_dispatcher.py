import threading
from unittest.mock import patch

from tradapi.core.dispatcher import BackgroundDispatcher


class TestBackgroundDispatcher:
    """백그라운드 디스패처 테스트"""

    def test_runs_submitted_task(self):
        dispatcher = BackgroundDispatcher(max_workers=1, max_pending=10)
        results = []

        assert dispatcher.submit("append", results.append, 42) is True
        assert dispatcher.drain(timeout=5) is True

        assert results == [42]
        dispatcher.shutdown()

    def test_failure_is_logged_not_raised(self):
        dispatcher = BackgroundDispatcher(max_workers=1, max_pending=10)

        def boom():
            raise RuntimeError("nope")

        with patch("tradapi.core.dispatcher.logger") as mock_logger:
            assert dispatcher.submit("boom", boom) is True
            assert dispatcher.drain(timeout=5) is True

        mock_logger.exception.assert_called_once()
        assert dispatcher.pending_count == 0
        dispatcher.shutdown()

    def test_full_channel_drops(self):
        dispatcher = BackgroundDispatcher(max_workers=1, max_pending=1)
        release = threading.Event()

        assert dispatcher.submit("blocker", release.wait, 5) is True
        assert dispatcher.submit("overflow", print, "never") is False

        release.set()
        assert dispatcher.drain(timeout=5) is True
        # slot is free again
        assert dispatcher.submit("after", lambda: None) is True
        dispatcher.shutdown()

    def test_closed_dispatcher_drops(self):
        dispatcher = BackgroundDispatcher(max_workers=1, max_pending=10)
        dispatcher.shutdown()

        assert dispatcher.closed is True
        assert dispatcher.submit("late", lambda: None) is False
