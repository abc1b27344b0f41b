"""
Tests for the rich console notification sink.
"""

from __future__ import annotations

import asyncio
import io
import time

from rich.console import Console

from adapters.console.notifier import ConsoleNotificationSink


def _console() -> Console:
    return Console(file=io.StringIO(), width=80, force_terminal=False)


def test_notify_renders_title_and_body() -> None:
    console = _console()
    sink = ConsoleNotificationSink(console=console, display_seconds=5.0, sound_enabled=False)

    sink.notify("Water Reminder", "Time to drink a glass of water!")

    output = console.file.getvalue()  # type: ignore[attr-defined]
    assert "Water Reminder" in output
    assert "Time to drink a glass of water!" in output
    assert [b.title for b in sink.active] == ["Water Reminder"]


async def test_banner_expires_on_the_event_loop() -> None:
    sink = ConsoleNotificationSink(console=_console(), display_seconds=0.01)

    sink.notify("Medicine Reminder", "Time to take your medicine: Aspirin")
    assert len(sink.active) == 1

    await asyncio.sleep(0.05)
    assert sink.active == []


def test_banner_expires_without_an_event_loop() -> None:
    sink = ConsoleNotificationSink(console=_console(), display_seconds=0.01)

    sink.notify("Water Reminder", "Time to drink a glass of water!")
    deadline = time.monotonic() + 2.0
    while sink.active and time.monotonic() < deadline:
        time.sleep(0.01)

    assert sink.active == []


def test_dismiss_is_idempotent() -> None:
    sink = ConsoleNotificationSink(console=_console(), display_seconds=60.0)
    sink.notify("Water Reminder", "drink")
    banner = sink.active[0]

    sink.dismiss(banner)
    sink.dismiss(banner)

    assert sink.active == []
