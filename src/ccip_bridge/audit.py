"""Append-only audit log of transfer events.

One line per event: ``[<ISO-8601 UTC timestamp>] <message>``. Lines are
only ever appended, never rewritten.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path

from ccip_bridge.models.base import utcnow

logger = logging.getLogger(__name__)


def format_timestamp() -> str:
    """UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return utcnow().isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AuditLog:
    """Human-readable event stream mirroring every transfer transition.

    File writes run in the default executor so concurrent transfers keep
    progressing. Each event is also emitted at INFO level.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def record(self, message: str) -> str:
        """Append *message* and return the written line (without newline)."""
        line = f"[{format_timestamp()}] {message}"
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._append, line)
        logger.info(message)
        return line

    def _append(self, line: str) -> None:
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")

    def lines(self) -> list[str]:
        """Return all lines written so far."""
        if not self._path.exists():
            return []
        return self._path.read_text(encoding="utf-8").splitlines()
