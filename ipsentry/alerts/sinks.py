"""Display and notification sinks with pluggable backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..export.panel import CheckResult


class Notifier(Protocol):
    """Receives network-change notifications."""

    def notify(self, title: str, subtitle: str, body: str) -> None:
        """Deliver one notification."""


class Display(Protocol):
    """Receives the panel shown for manual and request-triggered runs."""

    def show(self, result: CheckResult) -> None:
        """Render one result."""


class NullNotifier:
    """No-op backend used when notifications are disabled."""

    def notify(self, title: str, subtitle: str, body: str) -> None:
        _ = (title, subtitle, body)


@dataclass(slots=True)
class ConsoleNotifier:
    """Prints notifications to the terminal."""

    console: Console = field(default_factory=lambda: Console(stderr=True))

    def notify(self, title: str, subtitle: str, body: str) -> None:
        self.console.print(Text(title, style="bold"))
        if subtitle:
            self.console.print(Text(subtitle, style="dim"))
        self.console.print(Text(body))


@dataclass(slots=True)
class ConsoleDisplay:
    """Draws the panel with its accent color as the border."""

    console: Console = field(default_factory=Console)

    def show(self, result: CheckResult) -> None:
        self.console.print(
            Panel(
                Text(result.body),
                title=Text(result.title, style="bold"),
                border_style=result.color,
                expand=False,
            )
        )
