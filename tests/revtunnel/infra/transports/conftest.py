"""Shared fixtures for transport tests."""
import threading

import pytest


class RecordingListener:
    """TransportListener that records callbacks and signals exit."""

    def __init__(self):
        self.statuses = []
        self.errors = []
        self.closed = []
        self.closed_event = threading.Event()
        self.success_event = threading.Event()

    def on_status(self, text):
        self.statuses.append(text)
        if "success" in text:
            self.success_event.set()

    def on_error(self, error):
        self.errors.append(error)

    def on_closed(self, code, signal):
        self.closed.append((code, signal))
        self.closed_event.set()


@pytest.fixture
def listener():
    return RecordingListener()
