"""
Sync Client Service

Registration and lookup of sync clients (devices), plus the tenant check
used before any operation that touches a client's queue.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from assetsync.core.exceptions import CrossTenantAccessError, SyncClientNotFoundError
from assetsync.models.sync_client import SyncClient

logger = logging.getLogger(__name__)


class SyncClientService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_client(self, client_id: str, with_user: bool = False) -> Optional[SyncClient]:
        stmt = select(SyncClient).where(SyncClient.id == client_id)
        if with_user:
            stmt = stmt.options(selectinload(SyncClient.user))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_client(self, user_id: str, device_id: str) -> Optional[SyncClient]:
        stmt = select(SyncClient).where(
            SyncClient.user_id == user_id,
            SyncClient.device_id == device_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def register_client(
        self,
        user_id: str,
        device_id: str,
        device_name: Optional[str] = None,
    ) -> SyncClient:
        """Create the client for (user, device) or reactivate the existing one."""
        client = await self.find_client(user_id, device_id)
        if client is None:
            client = SyncClient(
                user_id=user_id,
                device_id=device_id,
                device_name=device_name,
                is_active=True,
            )
            self.db.add(client)
            logger.info(f"Registered new sync client for user {user_id}, device {device_id}")
        else:
            client.is_active = True
            if device_name is not None:
                client.device_name = device_name
            client.updated_at = datetime.now(timezone.utc)
        await self.db.flush()
        return client

    async def unregister_device(self, user_id: str, device_id: str) -> SyncClient:
        client = await self.find_client(user_id, device_id)
        if client is None:
            raise SyncClientNotFoundError("Device not found")
        client.is_active = False
        await self.db.flush()
        logger.info(f"Deactivated sync client {client.id}")
        return client

    async def get_user_devices(self, user_id: str) -> List[SyncClient]:
        stmt = (
            select(SyncClient)
            .where(SyncClient.user_id == user_id)
            .order_by(SyncClient.last_sync_at.desc().nulls_last(), SyncClient.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_active_clients(self) -> List[SyncClient]:
        result = await self.db.execute(select(SyncClient).where(SyncClient.is_active.is_(True)))
        return list(result.scalars().all())

    async def require_client(
        self,
        client_id: str,
        organization_id: Optional[str] = None,
    ) -> SyncClient:
        """
        Load a client with its user, enforcing tenancy when an organization is given.
        """
        client = await self.get_client(client_id, with_user=True)
        if client is None:
            raise SyncClientNotFoundError()
        self.check_tenant(client, organization_id)
        return client

    @staticmethod
    def check_tenant(client: SyncClient, organization_id: Optional[str]) -> None:
        if organization_id is None:
            return
        user = client.user
        if user is None or user.organization_id != organization_id:
            raise CrossTenantAccessError(
                f"Sync client {client.id} does not belong to organization {organization_id}"
            )
