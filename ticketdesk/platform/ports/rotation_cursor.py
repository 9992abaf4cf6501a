import uuid
from typing import Protocol, runtime_checkable

@runtime_checkable
class RotationCursorPort(Protocol):
    async def next_position(self, rule_id: uuid.UUID) -> int:
        """Atomically advance the rule's cursor and return the position it held before (0-based)."""
        ...
