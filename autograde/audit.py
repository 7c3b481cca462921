"""Fire-and-forget audit logging."""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import async_sessionmaker

from .models import AuditLog

logger = logging.getLogger(__name__)


class AuditEvent(BaseModel):
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    user_id: Optional[str] = None
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None


class AuditLogger:
    """Writes audit events in background tasks.

    ``record`` never blocks the caller and a failed write is only logged.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._tasks: Set[asyncio.Task] = set()

    def record(self, event: AuditEvent) -> None:
        try:
            task = asyncio.get_running_loop().create_task(self._write(event))
        except RuntimeError:
            logger.warning(f"No running event loop; audit event '{event.action}' dropped")
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _write(self, event: AuditEvent) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(AuditLog(**event.model_dump()))
        except Exception as e:
            logger.warning(f"Failed to write audit event '{event.action}' for {event.resource_id}: {e}")

    async def drain(self) -> None:
        """Wait for pending audit writes."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
