"""Tests for the CaptureCoordinator and its delay policy."""

import logging
import threading
import time

import pytest

from snapink.core.capture_service import (
    HIDE_SETTLE_DELAY,
    MAX_CAPTURE_DELAY,
    CaptureCoordinator,
    DisplayInfo,
    next_capture_delay,
)
from snapink.editor.session import AnnotationSession
from snapink.errors import InvalidDisplayError


@pytest.fixture
def coordinator(screen_source):
    return CaptureCoordinator(screen_source)


def wait_for_result(coordinator, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        bitmap = coordinator.poll()
        if bitmap is not None:
            return bitmap
        time.sleep(0.01)
    return None


class TestCaptureDelay:
    def test_settle_margin_added(self):
        assert next_capture_delay(0.0) == pytest.approx(HIDE_SETTLE_DELAY)
        assert next_capture_delay(0.5) == pytest.approx(0.85)

    def test_capped_at_one_second(self):
        assert next_capture_delay(0.9) == MAX_CAPTURE_DELAY
        assert next_capture_delay(10.0) == MAX_CAPTURE_DELAY

    def test_negative_selection_treated_as_zero(self):
        assert next_capture_delay(-3.0) == pytest.approx(HIDE_SETTLE_DELAY)


class TestDisplayInfo:
    def test_label_uses_scaled_size(self):
        display = DisplayInfo(index=1, left=0, top=0, width=1280, height=720, scale_factor=1.5)
        assert display.label == "Display 1  1920x1080"


class TestCaptureCoordinator:
    def test_poll_is_empty_before_capture(self, coordinator):
        assert coordinator.poll() is None

    def test_capture_delivers_bitmap(self, coordinator, screen_source):
        worker = coordinator.capture(0, 0.0)
        worker.join(timeout=5)

        bitmap = coordinator.poll()
        assert bitmap is not None
        assert bitmap.size == (200, 150)
        assert screen_source.grabbed == [0]
        assert coordinator.poll() is None

    def test_capture_runs_off_the_calling_thread(self, coordinator):
        worker = coordinator.capture(0, 0.0)

        assert worker is not threading.current_thread()
        assert worker.daemon
        worker.join(timeout=5)

    def test_capture_does_not_block_for_the_delay(self, coordinator):
        started = time.monotonic()
        worker = coordinator.capture(0, 0.5)
        elapsed = time.monotonic() - started

        assert elapsed < 0.4
        worker.join(timeout=5)
        assert coordinator.poll() is not None

    @pytest.mark.parametrize("index", [-1, 1, 7])
    def test_invalid_display_fails_before_dispatch(self, coordinator, screen_source, index):
        with pytest.raises(InvalidDisplayError):
            coordinator.capture(index, 0.0)

        assert screen_source.grabbed == []

    def test_enumeration_failure_is_invalid_display(self, coordinator, screen_source):
        screen_source.fail_enumeration = True

        with pytest.raises(InvalidDisplayError):
            coordinator.capture(0, 0.0)

    def test_vanished_display_delivers_nothing(self, coordinator, screen_source):
        screen_source.sizes = [(200, 150), (800, 600)]

        # Display 1 is valid at request time, gone when the worker wakes up
        worker = coordinator.capture(1, 0.3)
        screen_source.sizes = [(200, 150)]
        worker.join(timeout=5)

        assert coordinator.poll() is None
        assert screen_source.grabbed == []

    def test_grab_failure_delivers_nothing(self, coordinator, screen_source):
        screen_source.fail_grab = True

        worker = coordinator.capture(0, 0.0)
        worker.join(timeout=5)

        assert coordinator.poll() is None

    def test_unexpected_grab_error_is_logged_and_dropped(self, coordinator, screen_source, caplog):
        screen_source.grab_error = RuntimeError("buffer size mismatch")

        with caplog.at_level(logging.ERROR, logger="snapink.core.capture_service"):
            worker = coordinator.capture(0, 0.0)
            worker.join(timeout=5)

        assert coordinator.poll() is None
        assert "buffer size mismatch" in caplog.text

    def test_delay_is_clamped(self, coordinator):
        started = time.monotonic()
        worker = coordinator.capture(0, 30.0)
        worker.join(timeout=5)

        assert time.monotonic() - started < 3.0
        assert coordinator.poll() is not None

    def test_last_delivered_capture_wins(self, coordinator, screen_source):
        screen_source.sizes = [(200, 150), (64, 48)]
        session = AnnotationSession()

        slow = coordinator.capture(0, 0.3)
        fast = coordinator.capture(1, 0.0)
        fast.join(timeout=5)
        slow.join(timeout=5)

        for _ in range(2):
            bitmap = coordinator.poll()
            assert bitmap is not None
            session.reset_session(bitmap)

        assert coordinator.poll() is None
        assert session.current.size == (200, 150)
        assert session.history_depth == (1, 0)

    def test_result_can_seed_a_session(self, coordinator):
        session = AnnotationSession()
        coordinator.capture(0, 0.0)

        bitmap = wait_for_result(coordinator)
        session.reset_session(bitmap)

        assert session.has_image
        assert session.history_depth == (1, 0)
