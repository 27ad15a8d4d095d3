"""
Store API routes — thin HTTP layer over the lifecycle controller.

Features:
  - Per-IP rate limiting on store creation (client key via slowapi)
  - Domain errors translated to JSON error bodies
  - Read-only metrics and audit views
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi.util import get_remote_address

from store_orchestrator.errors import (
    AdmissionRejected, BackendFailure, Conflict, ValidationError,
)
from store_orchestrator.models import (
    StoreCreateRequest, StoreResponse, StoreCreatedResponse, MessageResponse,
    MetricsResponse, ErrorResponse, AuditLogResponse,
)
from store_orchestrator.services.lifecycle import LifecycleController

logger = logging.getLogger("stores")

router = APIRouter(tags=["stores"])


def get_controller(request: Request) -> LifecycleController:
    return request.app.state.controller


# =========================================================================
# REST Endpoints
# =========================================================================

@router.get("/stores", response_model=List[StoreResponse],
            responses={500: {"model": ErrorResponse}})
async def list_stores_endpoint(controller: LifecycleController = Depends(get_controller)):
    """List all stores with their current readiness."""
    try:
        return await controller.list_stores()
    except BackendFailure as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.post("/stores", response_model=StoreCreatedResponse,
             responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse},
                        500: {"model": ErrorResponse}})
async def create_store_endpoint(
    req: StoreCreateRequest,
    request: Request,
    controller: LifecycleController = Depends(get_controller),
):
    """Create a new store. Returns once provisioning has started, not when Ready."""
    client_key = get_remote_address(request)
    try:
        return await controller.create_store(req.name, client_key=client_key)
    except AdmissionRejected as e:
        raise HTTPException(status_code=429, detail=e.message)
    except (Conflict, ValidationError) as e:
        raise HTTPException(status_code=400, detail=e.message)
    except BackendFailure as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.delete("/stores/{store_id}", response_model=MessageResponse,
               responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def delete_store_endpoint(
    store_id: str,
    controller: LifecycleController = Depends(get_controller),
):
    """Delete a store: storage claims, Helm release, then namespace."""
    try:
        return await controller.delete_store(store_id)
    except (Conflict, ValidationError) as e:
        raise HTTPException(status_code=400, detail=e.message)
    except BackendFailure as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.get("/metrics", response_model=MetricsResponse)
async def metrics_endpoint(controller: LifecycleController = Depends(get_controller)):
    return controller.metrics()


# --- Audit endpoint ---
@router.get("/audit", response_model=AuditLogResponse)
async def audit_endpoint(
    limit: Optional[int] = Query(50, ge=1, le=1000, description="Most recent N entries"),
    controller: LifecycleController = Depends(get_controller),
):
    """Get the most recent audit entries held in memory."""
    entries = controller.recent_audit(limit)
    return {"entries": entries, "count": len(entries)}
