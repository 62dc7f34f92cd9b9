# portfolio_newsletter/routes/newsletter.py - Public subscription lifecycle
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
import logging
from portfolio_newsletter.database.subscriber_repository import SubscriberRepository
from portfolio_newsletter.newsletter.dependencies import (
    get_email_service,
    get_newsletter_service,
    get_subscriber_repository,
)
from portfolio_newsletter.newsletter.errors import AlreadyUnsubscribedError, SubscriberNotFoundError
from portfolio_newsletter.newsletter.models import (
    MessageResponse,
    SubscribeRequest,
    SubscribeResponse,
    UnsubscribeRequest,
)
from portfolio_newsletter.newsletter.service import NewsletterService
from portfolio_newsletter.services.email_service import EmailService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/newsletter", tags=["newsletter"])

@router.post("/subscribe", response_model=SubscribeResponse)
async def subscribe_newsletter(
    request: SubscribeRequest,
    background_tasks: BackgroundTasks,
    subscribers: SubscriberRepository = Depends(get_subscriber_repository),
    newsletter: NewsletterService = Depends(get_newsletter_service),
    email_service: EmailService = Depends(get_email_service)
):
    """Start double opt-in: email a signed confirmation link"""
    outcome = await newsletter.subscribe(subscribers, request.email)

    if outcome.confirmation_url:
        # Send confirmation email in background (non-blocking)
        background_tasks.add_task(
            email_service.send_confirmation_email,
            email=request.email,
            confirmation_url=outcome.confirmation_url,
            unsubscribe_url=outcome.unsubscribe_url
        )

    return SubscribeResponse(success=True, status=outcome.status, message=outcome.message)

@router.get("/confirm", response_model=MessageResponse)
async def confirm_subscription(
    req: Request,
    subscribers: SubscriberRepository = Depends(get_subscriber_repository),
    newsletter: NewsletterService = Depends(get_newsletter_service)
):
    """Confirm via signed, time-limited link. Bad links soft-fail with 200."""
    return await newsletter.confirm(subscribers, dict(req.query_params))

@router.get("/unsubscribe", response_model=MessageResponse)
async def unsubscribe_via_link(
    req: Request,
    subscribers: SubscriberRepository = Depends(get_subscriber_repository),
    newsletter: NewsletterService = Depends(get_newsletter_service)
):
    """Unsubscribe via permanent signed link from a newsletter footer"""
    return await newsletter.unsubscribe_via_link(subscribers, dict(req.query_params))

@router.post("/unsubscribe", response_model=MessageResponse)
async def unsubscribe_via_form(
    request: UnsubscribeRequest,
    subscribers: SubscriberRepository = Depends(get_subscriber_repository),
    newsletter: NewsletterService = Depends(get_newsletter_service)
):
    """Self-service form; unlike the link, this tells the user when nothing matched"""
    try:
        return await newsletter.unsubscribe_by_email(subscribers, request.email)
    except SubscriberNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Email address not found."
        )
    except AlreadyUnsubscribedError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You are already unsubscribed."
        )
