"""
Diagnostic sinks.

Everything the interpreter wants the script author to see (reference errors,
bad values, failed expressions, `say` output) goes to a DiagnosticSink with
three independent channels: info, warning and error.

Sinks:
    - LoggingSink: forwards to jcscript.logging (default for the player)
    - RecordingSink: keeps entries in memory (harness, `check`, tests)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from jcscript.logging import get_logger


class Channel(Enum):
    """Diagnostic channel."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """A single reported message."""
    channel: Channel
    message: str

    def __str__(self) -> str:
        return f"{self.channel.value}: {self.message}"


class DiagnosticSink(ABC):
    """Receives diagnostics from the interpreter."""

    @abstractmethod
    def emit(self, diagnostic: Diagnostic) -> None:
        ...

    def info(self, message: str) -> None:
        self.emit(Diagnostic(Channel.INFO, message))

    def warning(self, message: str) -> None:
        self.emit(Diagnostic(Channel.WARNING, message))

    def error(self, message: str) -> None:
        self.emit(Diagnostic(Channel.ERROR, message))


class LoggingSink(DiagnosticSink):
    """Forwards diagnostics to a module logger."""

    def __init__(self, module: str = 'script'):
        self._log = get_logger(module)

    def emit(self, diagnostic: Diagnostic) -> None:
        if diagnostic.channel is Channel.ERROR:
            self._log.error(diagnostic.message)
        elif diagnostic.channel is Channel.WARNING:
            self._log.warning(diagnostic.message)
        else:
            self._log.info(diagnostic.message)


class RecordingSink(DiagnosticSink):
    """Keeps every diagnostic in memory, optionally notifying a callback."""

    def __init__(self, on_emit: Optional[Callable[[Diagnostic], None]] = None):
        self.entries: List[Diagnostic] = []
        self._on_emit = on_emit

    def emit(self, diagnostic: Diagnostic) -> None:
        self.entries.append(diagnostic)
        if self._on_emit:
            self._on_emit(diagnostic)

    def messages(self, channel: Optional[Channel] = None) -> List[str]:
        """Messages in arrival order, optionally for one channel only."""
        return [d.message for d in self.entries
                if channel is None or d.channel is channel]

    @property
    def errors(self) -> List[str]:
        return self.messages(Channel.ERROR)

    @property
    def warnings(self) -> List[str]:
        return self.messages(Channel.WARNING)

    @property
    def infos(self) -> List[str]:
        return self.messages(Channel.INFO)

    def clear(self) -> None:
        self.entries.clear()
