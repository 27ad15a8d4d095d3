"""
Pydantic models for API request/response validation and the audit taxonomy.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from enum import Enum
from dataclasses import dataclass
from datetime import datetime


class StoreStatus(str, Enum):
    PROVISIONING = "Provisioning"
    READY = "Ready"


class AuditAction(str, Enum):
    STORE_CREATE_START = "STORE_CREATE_START"
    STORE_CREATE_DUPLICATE = "STORE_CREATE_DUPLICATE"
    STORE_CREATE_SUCCESS = "STORE_CREATE_SUCCESS"
    STORE_CREATE_FAILED = "STORE_CREATE_FAILED"
    STORE_DELETE_START = "STORE_DELETE_START"
    STORE_DELETE_SUCCESS = "STORE_DELETE_SUCCESS"
    STORE_DELETE_FAILED = "STORE_DELETE_FAILED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    STORE_LIMIT_EXCEEDED = "STORE_LIMIT_EXCEEDED"
    ORCHESTRATOR_START = "ORCHESTRATOR_START"


@dataclass(frozen=True)
class TenantNamespace:
    """A namespace that follows the tenant naming convention."""
    id: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RateLimitEntry:
    count: int
    reset_time: float


class StoreCreateRequest(BaseModel):
    """Request to create a new store. Free-form name; the id is derived from it."""
    name: str = Field(
        ...,
        description="Display name of the store; slugified into the store id",
        examples=["MyShop", "demo shop"],
    )


class StoreResponse(BaseModel):
    """Store details returned to the dashboard."""
    id: str
    status: StoreStatus = StoreStatus.PROVISIONING
    url: str
    createdAt: str


class StoreCreatedResponse(BaseModel):
    message: str
    id: str


class MessageResponse(BaseModel):
    message: str


class MetricsResponse(BaseModel):
    created: int = 0
    deleted: int = 0
    failures: int = 0


class ErrorResponse(BaseModel):
    error: str


class AuditLogEntry(BaseModel):
    timestamp: str
    action: AuditAction
    details: Dict[str, Any] = {}


class AuditLogResponse(BaseModel):
    entries: List[AuditLogEntry]
    count: int
