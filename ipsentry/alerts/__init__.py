"""Change detection and result sinks."""

from .change import ChangeDetector, NetworkSnapshot
from .sinks import ConsoleDisplay, ConsoleNotifier, Display, Notifier, NullNotifier

__all__ = [
    "ChangeDetector",
    "ConsoleDisplay",
    "ConsoleNotifier",
    "Display",
    "NetworkSnapshot",
    "Notifier",
    "NullNotifier",
]
