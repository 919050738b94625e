"""In-app notification helpers."""

import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def create(
        self,
        user_id: str,
        type: str,
        title: str,
        body: str,
        organization_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any: ...


class NotificationService:
    """Stores notifications in the ``notifications`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: str,
        type: str,
        title: str,
        body: str,
        organization_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            organization_id=organization_id,
            type=type,
            title=title,
            message=body,
            metadata_json=metadata,
        )
        self.db.add(notification)
        await self.db.flush()
        logger.info("Notification '%s' created for user %s", type, user_id)
        return notification
