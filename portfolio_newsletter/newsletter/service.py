# portfolio_newsletter/newsletter/service.py
import html
import logging
from typing import Callable, Mapping, Optional
from datetime import datetime, timedelta, timezone

from markdown_it import MarkdownIt

from portfolio_newsletter.config import Settings
from portfolio_newsletter.newsletter.errors import (
    AlreadyUnsubscribedError,
    ExpiredLinkError,
    InvalidSignatureError,
    NoActiveSubscribersError,
    SubscriberNotFoundError,
)
from portfolio_newsletter.newsletter.models import (
    ComposeNewsletterRequest,
    MessageResponse,
    NewsletterFormat,
    NewsletterSendRecord,
    SubscribeOutcome,
    SubscribeStatus,
)
from portfolio_newsletter.newsletter.signing import UrlSigner

logger = logging.getLogger(__name__)
_markdown = MarkdownIt("commonmark")

CONFIRM_PATH = "/newsletter/confirm"
UNSUBSCRIBE_PATH = "/newsletter/unsubscribe"

CONFIRMATION_SENT_MESSAGE = "Please check your email to confirm your subscription!"
ALREADY_SUBSCRIBED_MESSAGE = "You are already subscribed to the newsletter."
INVALID_CONFIRMATION_MESSAGE = "This confirmation link is invalid or has expired."
ALREADY_CONFIRMED_MESSAGE = "You are already subscribed!"
CONFIRMED_MESSAGE = "Thank you! Your subscription is confirmed."
INVALID_UNSUBSCRIBE_MESSAGE = "This unsubscribe link is invalid."
UNSUBSCRIBED_MESSAGE = "You have been unsubscribed from the newsletter."

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def render_newsletter_body(body: str, format: NewsletterFormat) -> str:
    """Turn the composed body into the HTML placed inside the newsletter layout"""
    if format in (NewsletterFormat.HTML, NewsletterFormat.HTML_EDITOR):
        return body
    if format == NewsletterFormat.MARKDOWN:
        return _markdown.render(body)
    return html.escape(body).replace("\r\n", "\n").replace("\n", "<br>\n")

class NewsletterService:
    """Subscription lifecycle: subscribe, confirm, unsubscribe and admin sends.

    Repositories are passed per call since each request owns its own
    connection; the signer and settings are fixed at construction.
    """

    def __init__(
        self,
        settings: Settings,
        signer: UrlSigner,
        clock: Callable[[], datetime] = utcnow
    ):
        self.settings = settings
        self.signer = signer
        self.clock = clock
        self.confirmation_ttl = timedelta(hours=settings.confirmation_link_ttl_hours)

    def confirmation_url(self, email: str) -> str:
        return self.signer.sign(
            CONFIRM_PATH,
            {"email": email},
            expires_at=self.clock() + self.confirmation_ttl
        )

    def unsubscribe_url(self, email: str) -> str:
        return self.signer.permanent_url(UNSUBSCRIBE_PATH, {"email": email})

    async def subscribe(self, subscribers, email: str) -> SubscribeOutcome:
        """Issue a confirmation link unless the address is already active.

        Nothing is written here; the row appears when the link is used.
        """
        existing = await subscribers.get_by_email(email)

        if existing and existing.is_active:
            logger.info(f"User already subscribed: {email}")
            return SubscribeOutcome(
                status=SubscribeStatus.ALREADY_SUBSCRIBED,
                message=ALREADY_SUBSCRIBED_MESSAGE
            )

        if existing and existing.is_subscribed:
            logger.info(f"Reissuing confirmation link for pending: {email}")
        elif existing:
            logger.info(f"Issuing resubscribe confirmation for: {email}")
        else:
            logger.info(f"Issuing confirmation link for: {email}")

        return SubscribeOutcome(
            status=SubscribeStatus.CONFIRMATION_SENT,
            message=CONFIRMATION_SENT_MESSAGE,
            confirmation_url=self.confirmation_url(email),
            unsubscribe_url=self.unsubscribe_url(email)
        )

    async def confirm(self, subscribers, params: Mapping[str, str]) -> MessageResponse:
        try:
            self.signer.verify(CONFIRM_PATH, params, now=self.clock().timestamp())
        except (InvalidSignatureError, ExpiredLinkError) as e:
            logger.warning(f"Confirmation rejected: {e}")
            return MessageResponse(success=False, message=INVALID_CONFIRMATION_MESSAGE)

        email = params.get("email")
        if not email:
            return MessageResponse(success=False, message=INVALID_CONFIRMATION_MESSAGE)

        existing = await subscribers.get_by_email(email)
        if existing and existing.is_active:
            return MessageResponse(success=True, message=ALREADY_CONFIRMED_MESSAGE)

        await subscribers.confirm(email, self.clock())
        return MessageResponse(success=True, message=CONFIRMED_MESSAGE)

    async def unsubscribe_via_link(self, subscribers, params: Mapping[str, str]) -> MessageResponse:
        """Permanent link path; unknown addresses get the same success answer"""
        try:
            self.signer.verify(UNSUBSCRIBE_PATH, params, now=self.clock().timestamp())
        except (InvalidSignatureError, ExpiredLinkError) as e:
            logger.warning(f"Unsubscribe link rejected: {e}")
            return MessageResponse(success=False, message=INVALID_UNSUBSCRIBE_MESSAGE)

        email = params.get("email")
        if not email:
            return MessageResponse(success=False, message=INVALID_UNSUBSCRIBE_MESSAGE)

        if await subscribers.unsubscribe(email, self.clock()):
            logger.info(f"Unsubscribed via link: {email}")

        return MessageResponse(success=True, message=UNSUBSCRIBED_MESSAGE)

    async def unsubscribe_by_email(self, subscribers, email: str) -> MessageResponse:
        existing = await subscribers.get_by_email(email)
        if not existing:
            raise SubscriberNotFoundError(email)

        if not existing.is_subscribed:
            raise AlreadyUnsubscribedError(email)

        await subscribers.unsubscribe(email, self.clock())
        logger.info(f"Unsubscribed via form: {email}")
        return MessageResponse(success=True, message=UNSUBSCRIBED_MESSAGE)

    async def send_newsletter(
        self,
        subscribers,
        sends,
        email_service,
        request: ComposeNewsletterRequest
    ) -> NewsletterSendRecord:
        active = await subscribers.list_active()
        if not active:
            raise NoActiveSubscribersError("No active subscribers to send to.")

        html_body = render_newsletter_body(request.body, request.format)

        delivered = 0
        for subscriber in active:
            sent = await email_service.send_newsletter(
                email=subscriber.email,
                subject=request.subject,
                html_body=html_body,
                unsubscribe_url=self.unsubscribe_url(subscriber.email)
            )
            if sent:
                delivered += 1

        if delivered < len(active):
            logger.warning(f"Newsletter '{request.subject}' delivered to {delivered}/{len(active)} subscribers")

        return await sends.create(
            subject=request.subject,
            body=request.body,
            format=request.format.value,
            recipient_count=len(active),
            sent_at=self.clock()
        )
