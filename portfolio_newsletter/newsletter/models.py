from pydantic import BaseModel, Field, field_validator
from pydantic.networks import validate_email
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

MAX_EMAIL_LENGTH = 255

class SubscribeStatus(str, Enum):
    CONFIRMATION_SENT = "confirmation_sent"
    ALREADY_SUBSCRIBED = "already_subscribed"

class NewsletterFormat(str, Enum):
    MARKDOWN = "markdown"
    HTML = "html"
    HTML_EDITOR = "html_editor"
    PLAINTEXT = "plaintext"

class Subscriber(BaseModel):
    id: str
    email: str
    confirmed_at: Optional[datetime] = None
    unsubscribed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_subscribed(self) -> bool:
        return self.unsubscribed_at is None

    @property
    def is_active(self) -> bool:
        return self.confirmed_at is not None and self.unsubscribed_at is None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Subscriber":
        data = dict(record)
        data["id"] = str(data["id"])
        return cls(**data)

class NewsletterSendRecord(BaseModel):
    id: str
    subject: str
    body: str
    format: NewsletterFormat
    recipient_count: int
    sent_at: datetime
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "NewsletterSendRecord":
        data = dict(record)
        data["id"] = str(data["id"])
        return cls(**data)

class EmailRequest(BaseModel):
    email: str

    @field_validator("email", mode="before")
    @classmethod
    def check_length(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if len(value) > MAX_EMAIL_LENGTH:
                raise ValueError(f"Email must not be longer than {MAX_EMAIL_LENGTH} characters")
        return value

    @field_validator("email")
    @classmethod
    def check_address(cls, value: str) -> str:
        # Validate only; the address is stored exactly as submitted
        validate_email(value)
        return value

class SubscribeRequest(EmailRequest):
    pass

class UnsubscribeRequest(EmailRequest):
    pass

class MessageResponse(BaseModel):
    success: bool
    message: str

class SubscribeResponse(MessageResponse):
    status: Optional[SubscribeStatus] = None

class SubscribeOutcome(BaseModel):
    """Result of a subscribe call; confirmation_url is set when an email must go out"""
    status: SubscribeStatus
    message: str
    confirmation_url: Optional[str] = None
    unsubscribe_url: Optional[str] = None

class SubscriberStats(BaseModel):
    total: int
    active: int
    pending: int
    unsubscribed: int

class SubscriberPage(BaseModel):
    subscribers: List[Subscriber]
    page: int
    per_page: int
    total: int
    stats: SubscriberStats

class ComposeNewsletterRequest(BaseModel):
    subject: str = Field(..., max_length=255)
    body: str
    format: NewsletterFormat

    @field_validator("subject", "body")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("This field is required")
        return value

class SendNewsletterResponse(MessageResponse):
    recipient_count: int

class NewsletterHistoryPage(BaseModel):
    newsletters: List[NewsletterSendRecord]
    page: int
    per_page: int
    total: int
