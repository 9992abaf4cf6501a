import logging
import uuid

from sqlalchemy import update, insert
from sqlalchemy.exc import IntegrityError, OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ticketdesk.core.errors import StoreUnavailable
from ticketdesk.modules.routing.models import RoutingCursor
from ticketdesk.platform.ports.rotation_cursor import RotationCursorPort

log = logging.getLogger("cursor.db")

class DbRotationCursor(RotationCursorPort):
    """
    Cursor kept in the ``routingcursor`` table.

    Each advance is a single ``UPDATE ... RETURNING`` in its own short transaction,
    so concurrent ticket creations never read the same position.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def next_position(self, rule_id: uuid.UUID) -> int:
        stmt = (
            update(RoutingCursor)
            .where(RoutingCursor.rule_id == rule_id)
            .values(position=RoutingCursor.position + 1)
            .returning(RoutingCursor.position)
        )
        try:
            for _ in range(2):
                async with self.session_factory() as session:
                    res = await session.execute(stmt)
                    position = res.scalar_one_or_none()
                    if position is not None:
                        await session.commit()
                        return position - 1
                    try:
                        await session.execute(
                            insert(RoutingCursor).values(id=uuid.uuid4(), rule_id=rule_id, position=1)
                        )
                        await session.commit()
                        return 0
                    except IntegrityError:
                        # another worker created the row first; advance it instead
                        await session.rollback()
                        log.debug(f"[DB CURSOR] lost insert race for rule={rule_id}")
        except (OperationalError, InterfaceError, OSError) as e:
            log.error(f"[DB CURSOR] advance failed for rule={rule_id}: {e}")
            raise StoreUnavailable("routing cursor unavailable") from e
        raise StoreUnavailable(f"could not advance routing cursor for rule={rule_id}")
