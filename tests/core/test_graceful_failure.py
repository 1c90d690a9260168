"""
Tests for graceful failure utilities.
"""
import logging

from practice_app.core.graceful_failure import graceful_failure

logger = logging.getLogger("tests.graceful_failure")


class TestGracefulFailure:
    def test_success_passes_through(self, caplog):
        calls = []

        with caplog.at_level(logging.WARNING):
            with graceful_failure("log result", logger):
                calls.append(1)

        assert calls == [1]
        assert caplog.records == []

    def test_exception_is_logged_and_suppressed(self, caplog):
        with caplog.at_level(logging.WARNING):
            with graceful_failure("log result", logger):
                raise RuntimeError("disk full")

        assert len(caplog.records) == 1
        assert caplog.records[0].levelno == logging.WARNING
        assert caplog.records[0].getMessage() == "Failed to log result: disk full"

    def test_context_and_level(self, caplog):
        with caplog.at_level(logging.WARNING):
            with graceful_failure(
                "save reattempt task",
                logger,
                log_level=logging.ERROR,
                context={"session_id": "abc", "question_number": 3},
            ):
                raise ValueError("boom")

        record = caplog.records[0]
        assert record.levelno == logging.ERROR
        assert record.getMessage() == (
            "Failed to save reattempt task (session_id=abc, question_number=3): boom"
        )
        assert record.session_id == "abc"

    def test_exc_info(self, caplog):
        with caplog.at_level(logging.WARNING):
            with graceful_failure("notify", logger, exc_info=True):
                raise KeyError("x")

        assert caplog.records[0].exc_info is not None
