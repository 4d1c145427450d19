"""
Notification API Routes
=======================

In-app notification history, read status, device registration for push and
push preferences. All endpoints act on the authenticated user.

  GET  /api/v1/notifications                          -- Notification history
  POST /api/v1/notifications/{notification_id}/read   -- Mark one as read
  POST /api/v1/notifications/devices                  -- Register a device token
  GET  /api/v1/notifications/preferences              -- Current preferences
  PUT  /api/v1/notifications/preferences              -- Update preferences
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, HTTPException, Query, status

from gighub.api.deps import CurrentUser, DBSession
from gighub.api.schemas.notification import (
    DeviceRegisterRequest,
    DeviceRegisterResponse,
    NotificationOut,
    NotificationPreferencesOut,
    NotificationPreferencesRequest,
)
from gighub.models import DevicePlatform
from gighub.services import notificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationOut], summary="Notification history")
async def list_notifications(
    db: DBSession,
    current_user: CurrentUser,
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
) -> list[NotificationOut]:
    notifications = await notificationService.list_notifications(
        db, current_user.id, unread_only=unread_only, limit=limit
    )
    return [NotificationOut.model_validate(n) for n in notifications]


@router.post(
    "/{notification_id}/read",
    response_model=NotificationOut,
    summary="Mark a notification as read",
)
async def mark_read(
    notification_id: uuid.UUID, db: DBSession, current_user: CurrentUser
) -> NotificationOut:
    notification = await notificationService.mark_as_read(db, notification_id, current_user.id)
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification {notification_id} not found",
        )
    return NotificationOut.model_validate(notification)


@router.post(
    "/devices",
    response_model=DeviceRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a device token for push notifications",
)
async def register_device(
    body: DeviceRegisterRequest, db: DBSession, current_user: CurrentUser
) -> DeviceRegisterResponse:
    token = await notificationService.register_device_token(
        db,
        current_user.id,
        body.device_token,
        DevicePlatform(body.platform),
        body.app_version,
    )
    return DeviceRegisterResponse.model_validate(token)


@router.get(
    "/preferences",
    response_model=NotificationPreferencesOut,
    summary="Current push preferences",
)
async def get_preferences(db: DBSession, current_user: CurrentUser) -> NotificationPreferencesOut:
    prefs = await notificationService.get_preferences(db, current_user.id)
    return NotificationPreferencesOut.model_validate(prefs)


@router.put(
    "/preferences",
    response_model=NotificationPreferencesOut,
    summary="Update push preferences",
)
async def update_preferences(
    body: NotificationPreferencesRequest, db: DBSession, current_user: CurrentUser
) -> NotificationPreferencesOut:
    prefs = await notificationService.update_preferences(
        db, current_user.id, body.model_dump(exclude_none=True)
    )
    logger.info("Notification preferences updated for user %s", current_user.id)
    return NotificationPreferencesOut.model_validate(prefs)
