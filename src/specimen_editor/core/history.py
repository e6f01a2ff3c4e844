"""Linear undo log of committed pixel buffers."""

from __future__ import annotations

import logging
from typing import List

from .buffer import PixelBuffer

logger = logging.getLogger(__name__)


def _snapshot(buffer: PixelBuffer) -> PixelBuffer:
    frozen = buffer.copy()
    frozen.pixels.flags.writeable = False
    return frozen


class HistoryStack:
    """
    Ordered snapshots, oldest first.

    Index 0 is the post-transform baseline and is never removed; the last
    entry is the visible/exportable state. Buffers are copied on entry so
    the caller keeps ownership of whatever it pushes, and stored copies are
    read-only so a returned entry cannot be edited behind the history. There
    is no redo.
    """

    def __init__(self, baseline: PixelBuffer) -> None:
        self._entries: List[PixelBuffer] = [_snapshot(baseline)]

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def baseline(self) -> PixelBuffer:
        return self._entries[0]

    @property
    def can_undo(self) -> bool:
        return len(self._entries) > 1

    def top(self) -> PixelBuffer:
        return self._entries[-1]

    def push(self, buffer: PixelBuffer) -> None:
        top = self._entries[-1]
        assert buffer.size == top.size, (
            f"History entry size {buffer.size} does not match baseline {top.size}"
        )
        self._entries.append(_snapshot(buffer))
        logger.debug("History push -> %d entries", len(self._entries))

    def undo(self) -> bool:
        """Drop the newest entry; returns False when only the baseline remains."""
        if not self.can_undo:
            logger.debug("Nothing to undo")
            return False
        self._entries.pop()
        logger.debug("History undo -> %d entries", len(self._entries))
        return True

    def reset(self) -> None:
        """Discard every entry above the baseline."""
        del self._entries[1:]
        logger.debug("History reset to baseline")
