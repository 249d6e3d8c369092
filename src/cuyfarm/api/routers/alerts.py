"""
Alerts router: farm alerts raised by rules or created by hand.

Endpoints:
    GET    /alerts                  List alerts (type, severity, read, user)
    POST   /alerts                  Create an alert
    GET    /alerts/stats            Totals by severity and type
    POST   /alerts/generate         Run every alert rule now
    POST   /alerts/cleanup          Delete alerts older than N days
    POST   /alerts/mark-all-read    Mark every unread alert as read
    GET    /alerts/{id}             Get an alert
    DELETE /alerts/{id}             Delete an alert
    POST   /alerts/{id}/read        Mark one alert as read
"""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from cuyfarm.alerts.protocol import AlertSeverity, AlertType
from cuyfarm.api.deps import OpContext, Pagination
from cuyfarm.api.utils import _paged, _single
from cuyfarm.ops import alerts as ops
from cuyfarm.ops.requests import CreateAlertRequest, ListAlertsRequest

router = APIRouter(prefix="/alerts")


class AlertCreate(BaseModel):
    type: AlertType
    severity: AlertSeverity = AlertSeverity.MEDIUM
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    user_id: str | None = None
    related_entity_id: str | None = None
    related_entity_type: str | None = None


class MarkReadBody(BaseModel):
    action_taken: str | None = Field(default=None, max_length=200)


class GenerateBody(BaseModel):
    hoy: date | None = Field(default=None, description="Reference date (default today)")


@router.get("")
def list_alerts(
    ctx: OpContext,
    pagination: Pagination,
    type: str | None = Query(None, description="Filter by alert type"),
    severity: str | None = Query(None),
    read: bool | None = Query(None, description="true = read, false = unread"),
    user_id: str | None = Query(None),
):
    request = ListAlertsRequest(
        alert_type=type,
        severity=severity,
        read=read,
        user_id=user_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _paged(ops.list_alerts(ctx, request))


@router.post("", status_code=201)
def create_alert(
    ctx: OpContext,
    body: AlertCreate,
    dry_run: bool = Query(False, description="Validate only; nothing is stored"),
):
    ctx.dry_run = dry_run
    request = CreateAlertRequest(
        alert_type=body.type.value,
        severity=body.severity.value,
        title=body.title,
        message=body.message,
        data=body.data,
        user_id=body.user_id,
        related_entity_id=body.related_entity_id,
        related_entity_type=body.related_entity_type,
    )
    return _single(ops.create_alert(ctx, request), status_code=200 if dry_run else 201)


@router.get("/stats")
def alert_stats(ctx: OpContext):
    return _single(ops.alert_stats(ctx))


@router.post("/generate")
def generate_alerts(ctx: OpContext, body: GenerateBody | None = None):
    """Evaluate the rules; an alert already pending for the same entity is skipped."""
    return _single(ops.generate_all_alerts(ctx, body.hoy if body else None))


@router.post("/cleanup")
def cleanup_alerts(ctx: OpContext, days: int = Query(30, ge=1, le=365)):
    return _single(ops.cleanup_old_alerts(ctx, days))


@router.post("/mark-all-read")
def mark_all_read(ctx: OpContext, user_id: str | None = Query(None)):
    return _single(ops.mark_all_read(ctx, user_id))


@router.get("/{alert_id}")
def get_alert(ctx: OpContext, alert_id: str):
    return _single(ops.get_alert(ctx, alert_id))


@router.delete("/{alert_id}")
def delete_alert(ctx: OpContext, alert_id: str):
    return _single(ops.delete_alert(ctx, alert_id))


@router.post("/{alert_id}/read")
def mark_read(ctx: OpContext, alert_id: str, body: MarkReadBody | None = None):
    return _single(ops.mark_read(ctx, alert_id, body.action_taken if body else None))
