"""
Terminal notification sink.

Renders each reminder as a rich panel, rings the terminal bell in place of the
reminder sound, and dismisses the banner after a fixed duration on its own.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime

from rich.console import Console
from rich.panel import Panel

_ICONS = {"water": "💧", "medicine": "💊"}


@dataclass(eq=False)
class Banner:
    """A notification currently shown to the user."""

    title: str
    body: str
    shown_at: datetime = field(default_factory=datetime.now)


class ConsoleNotificationSink:
    """Fire-and-forget NotificationSink backed by a rich Console."""

    def __init__(
        self,
        console: Console | None = None,
        display_seconds: float = 10.0,
        sound_enabled: bool = True,
    ) -> None:
        self.console = console or Console()
        self.display_seconds = display_seconds
        self.sound_enabled = sound_enabled
        self.active: list[Banner] = []
        self._lock = threading.Lock()

    def notify(self, title: str, body: str) -> None:
        banner = Banner(title=title, body=body)
        with self._lock:
            self.active.append(banner)

        icon = next((v for k, v in _ICONS.items() if k in title.lower()), "🔔")
        self.console.print(Panel(body, title=f"{icon} {title}", border_style="cyan", expand=False))
        if self.sound_enabled:
            self.console.bell()

        self._schedule_dismiss(banner)

    def dismiss(self, banner: Banner) -> None:
        with self._lock:
            if banner in self.active:
                self.active.remove(banner)

    def _schedule_dismiss(self, banner: Banner) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            timer = threading.Timer(self.display_seconds, self.dismiss, args=(banner,))
            timer.daemon = True
            timer.start()
            return
        loop.call_later(self.display_seconds, self.dismiss, banner)
