import asyncio
import uuid
from collections import defaultdict

from ticketdesk.platform.ports.rotation_cursor import RotationCursorPort

class MemoryRotationCursor(RotationCursorPort):
    """Single-process cursor; positions reset when the process restarts."""

    def __init__(self):
        self._positions: dict[uuid.UUID, int] = defaultdict(int)
        self._lock = asyncio.Lock()

    async def next_position(self, rule_id: uuid.UUID) -> int:
        async with self._lock:
            position = self._positions[rule_id]
            self._positions[rule_id] = position + 1
            return position
