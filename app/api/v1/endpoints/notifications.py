# app/api/v1/endpoints/notifications.py
from typing import List

from fastapi import APIRouter, Depends, Path, Request

from app.api.deps import get_services
from app.core.rate_limiter import limiter
from app.core.security import get_current_user
from app.models.notification import Notification, validate_notification_response
from app.models.user import User
from app.services.container import LibraryServices

router = APIRouter(tags=["Notifications"])


@router.get("", response_model=List[Notification.Response])
@limiter.limit("60/minute")
async def my_notifications(
    request: Request,
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    notifications = await services.notifications.list_for_user(current_user.id)
    return [validate_notification_response(n) for n in notifications]


@router.get("/unread-count", response_model=Notification.UnreadCount)
@limiter.limit("120/minute")
async def unread_count(
    request: Request,
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    return Notification.UnreadCount(count=await services.notifications.unread_count(current_user.id))


@router.patch("/read-all")
@limiter.limit("30/minute")
async def mark_all_read(
    request: Request,
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    await services.notifications.mark_all_read(current_user.id)
    return {"message": "All notifications marked as read"}


@router.patch("/{notification_id}/read")
@limiter.limit("60/minute")
async def mark_read(
    request: Request,
    notification_id: str = Path(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    await services.notifications.mark_read(notification_id, current_user.id)
    return {"message": "Notification marked as read"}
