"""
Schemas for sync events, client sync state, job descriptors and read models.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from assetsync.core.enums import SyncJobType, SyncOperation
from assetsync.core.exceptions import SyncValidationError
from assetsync.schemas.base import BaseSchema


# ---------------------------------------------------------------------------
# Background sync registration and client sync state
# ---------------------------------------------------------------------------

class BackgroundSyncRegistration(BaseSchema):
    tag: str
    min_interval: Optional[int] = None  # milliseconds between syncs
    max_retries: Optional[int] = None
    requires_network: Optional[bool] = None
    requires_charging: Optional[bool] = None
    registered_at: Optional[datetime] = None

    @field_validator('tag')
    @classmethod
    def validate_tag(cls, v):
        if not v or not v.strip():
            raise ValueError('Background sync tag must not be empty')
        return v.strip()

    @field_validator('min_interval', 'max_retries')
    @classmethod
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('Value must be zero or greater')
        return v


class SyncTokenState(BaseSchema):
    """
    Typed view of ``SyncClient.sync_token``.

    Known sections are named fields; keys written by other features are kept
    as extra attributes so a re-registration never drops them.
    """
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="allow",
    )

    schema_version: int = 1
    background_sync: Optional[BackgroundSyncRegistration] = None

    @classmethod
    def from_token(cls, token: Any) -> "SyncTokenState":
        if not token:
            return cls()
        if not isinstance(token, dict):
            # Legacy opaque tokens are kept under a named key
            token = {"cursor": token}
        try:
            return cls.model_validate(token)
        except ValidationError as e:
            raise SyncValidationError(f"Stored sync token is malformed: {e}")

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        extras = self.model_extra or {}
        if extras:
            # Keys owned by other features are written back as they were, nulls included
            full = self.model_dump(mode="json", by_alias=True)
            for key in extras:
                payload[key] = full[key]
        return payload


# ---------------------------------------------------------------------------
# Inbound client sync events
# ---------------------------------------------------------------------------

class BackgroundSyncEvent(BaseSchema):
    tag: str
    client_id: str
    last_chance: bool = False
    data: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Job descriptors handed to the job queue
# ---------------------------------------------------------------------------

class SyncJobBase(BaseSchema):
    client_id: str
    item_ids: List[str]

    @property
    def queue_priority(self) -> int:
        return 0


class BatchSyncJob(SyncJobBase):
    type: Literal["batch-sync"] = SyncJobType.BATCH_SYNC.value


class CriticalSyncJob(SyncJobBase):
    type: Literal["critical-sync"] = SyncJobType.CRITICAL_SYNC.value
    priority: int = 10

    @property
    def queue_priority(self) -> int:
        return self.priority


class TypeSyncJob(SyncJobBase):
    type: Literal["type-sync"] = SyncJobType.TYPE_SYNC.value
    entity_type: str


class CustomSyncJob(SyncJobBase):
    type: Literal["custom-sync"] = SyncJobType.CUSTOM_SYNC.value
    tag: str


class RetrySyncJob(SyncJobBase):
    type: Literal["retry-sync"] = SyncJobType.RETRY_SYNC.value


SyncJob = Annotated[
    Union[BatchSyncJob, CriticalSyncJob, TypeSyncJob, CustomSyncJob, RetrySyncJob],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

class SyncQueueStats(BaseSchema):
    pending: int = 0
    failed: int = 0
    completed: int = 0
    by_entity_type: Dict[str, int] = Field(default_factory=dict)
    oldest_pending: Optional[datetime] = None


class SyncHealth(BaseSchema):
    health_score: int
    active_clients: int
    sync_backlog: int
    failure_rate: float
    recommendations: List[str] = Field(default_factory=list)


class SyncMetadataRead(BaseSchema):
    entity_type: str
    entity_id: str
    version: int
    last_modified_by: str
    last_modified_at: datetime
    checksum: Optional[str] = None
    deleted_at: Optional[datetime] = None
    client_id: Optional[str] = None


class SyncChange(BaseSchema):
    entity_type: str
    entity_id: str
    operation: SyncOperation
    version: int
    timestamp: datetime
    payload: Dict[str, Any] = Field(default_factory=dict)


class DeltaChangesPage(BaseSchema):
    changes: List[SyncChange] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    has_more: bool = False


class SyncConflict(BaseSchema):
    entity_type: str
    entity_id: str
    client_version: int
    server_version: int


class SyncClientRead(BaseSchema):
    id: str
    user_id: str
    device_id: str
    device_name: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    is_active: bool = True


# ---------------------------------------------------------------------------
# Request / response bodies
# ---------------------------------------------------------------------------

class SyncClientRegister(BaseSchema):
    user_id: str
    device_id: str
    device_name: Optional[str] = None


class BackgroundSyncRegisterRequest(BaseSchema):
    user_id: str
    device_id: str
    registration: BackgroundSyncRegistration


class SyncEventResponse(BaseSchema):
    pending_count: int
    job_type: Optional[str] = None
    item_ids: List[str] = Field(default_factory=list)
    abandoned_ids: List[str] = Field(default_factory=list)
