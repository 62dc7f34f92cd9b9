# portfolio_newsletter/routes/admin_newsletter.py - Admin subscriber management and sends
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from datetime import datetime, timezone
from uuid import UUID
import csv
import io
import logging
from portfolio_newsletter.auth.dependencies import require_admin
from portfolio_newsletter.database.send_repository import NewsletterSendRepository
from portfolio_newsletter.database.subscriber_repository import SubscriberRepository
from portfolio_newsletter.newsletter.dependencies import (
    get_email_service,
    get_newsletter_service,
    get_send_repository,
    get_subscriber_repository,
)
from portfolio_newsletter.newsletter.errors import NoActiveSubscribersError
from portfolio_newsletter.newsletter.models import (
    ComposeNewsletterRequest,
    MessageResponse,
    NewsletterHistoryPage,
    NewsletterSendRecord,
    SendNewsletterResponse,
    Subscriber,
    SubscriberPage,
)
from portfolio_newsletter.newsletter.service import NewsletterService
from portfolio_newsletter.services.email_service import EmailService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/admin",
    tags=["admin-newsletter"],
    dependencies=[Depends(require_admin)]
)

def _page_size(request: Request) -> int:
    return request.app.state.settings.admin_page_size

@router.get("/newsletter-subscribers", response_model=SubscriberPage)
async def list_subscribers(
    request: Request,
    page: int = Query(1, ge=1),
    subscribers: SubscriberRepository = Depends(get_subscriber_repository)
):
    """Newest subscribers first, with lifecycle stats"""
    per_page = _page_size(request)
    stats = await subscribers.stats()
    rows = await subscribers.list_page(limit=per_page, offset=(page - 1) * per_page)

    return SubscriberPage(
        subscribers=rows,
        page=page,
        per_page=per_page,
        total=stats.total,
        stats=stats
    )

@router.get("/newsletter-subscribers/export")
async def export_subscribers(
    subscribers: SubscriberRepository = Depends(get_subscriber_repository)
):
    """CSV of active (confirmed, not unsubscribed) subscribers"""
    active = await subscribers.list_active()

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["email", "confirmed_at"])
    for subscriber in active:
        writer.writerow([
            subscriber.email,
            subscriber.confirmed_at.strftime("%Y-%m-%d %H:%M:%S")
        ])

    logger.info(f"Exported {len(active)} active newsletter subscribers")

    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="subscribers.csv"'}
    )

@router.patch("/newsletter-subscribers/{subscriber_id}/unsubscribe", response_model=Subscriber)
async def admin_unsubscribe(
    subscriber_id: UUID,
    subscribers: SubscriberRepository = Depends(get_subscriber_repository)
):
    subscriber = await subscribers.unsubscribe_by_id(subscriber_id, datetime.now(timezone.utc))
    if not subscriber:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscriber not found")

    logger.info(f"Admin unsubscribed {subscriber.email}")
    return subscriber

@router.delete("/newsletter-subscribers/{subscriber_id}", response_model=MessageResponse)
async def delete_subscriber(
    subscriber_id: UUID,
    subscribers: SubscriberRepository = Depends(get_subscriber_repository)
):
    """Unsubscribe an active row; purge a row that is already unsubscribed"""
    subscriber = await subscribers.get_by_id(subscriber_id)
    if not subscriber:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscriber not found")

    if subscriber.is_subscribed:
        await subscribers.unsubscribe_by_id(subscriber_id, datetime.now(timezone.utc))
        return MessageResponse(success=True, message="Subscriber unsubscribed successfully.")

    await subscribers.delete(subscriber_id)
    return MessageResponse(success=True, message="Subscriber deleted permanently.")

@router.post("/newsletter/send", response_model=SendNewsletterResponse)
async def send_newsletter(
    request: ComposeNewsletterRequest,
    subscribers: SubscriberRepository = Depends(get_subscriber_repository),
    sends: NewsletterSendRepository = Depends(get_send_repository),
    newsletter: NewsletterService = Depends(get_newsletter_service),
    email_service: EmailService = Depends(get_email_service)
):
    try:
        record = await newsletter.send_newsletter(subscribers, sends, email_service, request)
    except NoActiveSubscribersError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return SendNewsletterResponse(
        success=True,
        message="Newsletter sent successfully!",
        recipient_count=record.recipient_count
    )

@router.get("/newsletter/history", response_model=NewsletterHistoryPage)
async def newsletter_history(
    request: Request,
    page: int = Query(1, ge=1),
    sends: NewsletterSendRepository = Depends(get_send_repository)
):
    per_page = _page_size(request)
    total = await sends.count()
    rows = await sends.list_page(limit=per_page, offset=(page - 1) * per_page)
    return NewsletterHistoryPage(newsletters=rows, page=page, per_page=per_page, total=total)

@router.get("/newsletter/history/{send_id}", response_model=NewsletterSendRecord)
async def show_newsletter(
    send_id: UUID,
    sends: NewsletterSendRepository = Depends(get_send_repository)
):
    record = await sends.get(send_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Newsletter not found")
    return record

@router.delete("/newsletter/history/{send_id}", response_model=MessageResponse)
async def delete_newsletter(
    send_id: UUID,
    sends: NewsletterSendRepository = Depends(get_send_repository)
):
    if not await sends.delete(send_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Newsletter not found")
    return MessageResponse(success=True, message="Newsletter deleted successfully.")
