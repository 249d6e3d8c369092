"""
Notifications router: delivery channels, templates and deliveries.

Endpoints:
    GET    /notifications/channels        List channels
    POST   /notifications/channels        Create a channel
    GET    /notifications/channels/{id}   Get a channel
    PATCH  /notifications/channels/{id}   Update a channel
    DELETE /notifications/channels/{id}   Delete a channel
    GET    /notifications/templates       Message templates per alert type
    POST   /notifications/send            Send one alert through one channel
    POST   /notifications/broadcast       Send one alert to many channels
    POST   /notifications/retry           Retry failed deliveries
    GET    /notifications/deliveries      List delivery records
    GET    /notifications/stats           Delivery totals
    POST   /notifications/cleanup         Delete old delivery records
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from cuyfarm.alerts.protocol import ChannelType
from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _body, _paged, _single
from cuyfarm.ops import notifications as ops
from cuyfarm.ops.requests import CreateChannelRequest, ListChannelsRequest, ListDeliveriesRequest

router = APIRouter(prefix="/notifications")


class ChannelCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: ChannelType
    config: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    id: str | None = Field(default=None, description="Explicit channel id (generated when omitted)")


class ChannelUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: ChannelType | None = None
    config: dict[str, Any] | None = None
    enabled: bool | None = None


class SendBody(BaseModel):
    alert_id: str
    channel_id: str


class BroadcastBody(BaseModel):
    alert_id: str
    channel_ids: list[str] | None = Field(default=None, description="Default: every enabled channel")


# ------------------------------------------------------------------ #
# Channels
# ------------------------------------------------------------------ #


@router.get("/channels")
def list_channels(
    ctx: OpContext,
    pagination: Pagination,
    enabled: bool | None = Query(None),
    type: str | None = Query(None, description="Filter by channel type"),
):
    request = ListChannelsRequest(
        enabled=enabled, channel_type=type, limit=pagination.limit, offset=pagination.offset,
    )
    return _paged(ops.list_channels(ctx, request))


@router.post("/channels", status_code=201)
def create_channel(ctx: OpContext, body: ChannelCreate):
    request = CreateChannelRequest(
        name=body.name,
        channel_type=body.type.value,
        config=body.config,
        enabled=body.enabled,
        channel_id=body.id,
    )
    return _single(ops.create_channel(ctx, request), status_code=201)


@router.get("/channels/{channel_id}")
def get_channel(ctx: OpContext, channel_id: str):
    return _single(ops.get_channel(ctx, channel_id))


@router.patch("/channels/{channel_id}")
def update_channel(ctx: OpContext, channel_id: str, body: ChannelUpdate):
    return _single(ops.update_channel(ctx, channel_id, _body(body)))


@router.delete("/channels/{channel_id}")
def delete_channel(ctx: OpContext, channel_id: str):
    return _single(ops.delete_channel(ctx, channel_id))


@router.get("/templates")
def list_templates(ctx: OpContext):
    return _single(ops.list_templates(ctx))


# ------------------------------------------------------------------ #
# Delivery
# ------------------------------------------------------------------ #


@router.post("/send")
def send_notification(ctx: OpContext, body: SendBody):
    """A failing channel still answers 200 with a ``failed`` delivery record."""
    return _single(ops.send_notification(ctx, body.alert_id, body.channel_id))


@router.post("/broadcast")
def broadcast(ctx: OpContext, body: BroadcastBody):
    return _single(ops.broadcast(ctx, body.alert_id, body.channel_ids))


@router.post("/retry")
def retry_failed(ctx: OpContext, max_attempts: int = Query(ops.MAX_ATTEMPTS, ge=1, le=ops.MAX_ATTEMPTS)):
    return _single(ops.retry_failed_deliveries(ctx, max_attempts))


@router.get("/deliveries")
def list_deliveries(
    ctx: OpContext,
    pagination: Pagination,
    alert_id: str | None = Query(None),
    channel_id: str | None = Query(None),
    status: str | None = Query(None),
):
    request = ListDeliveriesRequest(
        alert_id=alert_id,
        channel_id=channel_id,
        status=status,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_deliveries(ctx, request))


@router.get("/stats")
def delivery_stats(ctx: OpContext):
    return _single(ops.delivery_stats(ctx))


@router.post("/cleanup")
def cleanup_deliveries(ctx: OpContext, days: int = Query(7, ge=1, le=365)):
    return _single(ops.cleanup_old_deliveries(ctx, days))
