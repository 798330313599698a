"""
Event bus (events.py)
"""

import logging

from unittest.mock import MagicMock

from conduit.events import EventBus


class TestEventBus:

    def test_listener_receives_payload(self):
        bus = EventBus()
        listener = MagicMock()
        bus.on("forwarding", listener)

        bus.emit("forwarding", "Forwarding to orders.list ...")

        listener.assert_called_once_with("Forwarding to orders.list ...")

    def test_listeners_run_in_order(self):
        bus = EventBus()
        calls = []
        bus.on("error", lambda p: calls.append(("first", p)))
        bus.on("error", lambda p: calls.append(("second", p)))

        bus.emit("error", "boom")
        assert calls == [("first", "boom"), ("second", "boom")]

    def test_off(self):
        bus = EventBus()
        listener = MagicMock()
        bus.on("incomingMessage", listener)
        bus.off("incomingMessage", listener)
        bus.off("incomingMessage", listener)

        bus.emit("incomingMessage", object())
        listener.assert_not_called()

    def test_emit_without_listeners(self):
        EventBus().emit("nobody-listens", 1)

    def test_failing_listener_is_contained(self, caplog):
        bus = EventBus()
        after = MagicMock()
        bus.on("error", MagicMock(side_effect=RuntimeError("listener bug")))
        bus.on("error", after)

        with caplog.at_level(logging.ERROR, logger="conduit.events"):
            bus.emit("error", "boom")

        after.assert_called_once_with("boom")
        assert "listener bug" in caplog.text

    def test_errors_logged_at_error_level(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="conduit.events"):
            EventBus().emit("error", "Traceback ... ValueError: x")
            EventBus().emit("forwarding", "Forwarding to a.b ...")

        levels = {r.getMessage(): r.levelno for r in caplog.records}
        assert levels["Traceback ... ValueError: x"] == logging.ERROR
        assert levels["forwarding: Forwarding to a.b ..."] == logging.DEBUG
