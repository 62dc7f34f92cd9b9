from .service import NewsletterService, render_newsletter_body, CONFIRM_PATH, UNSUBSCRIBE_PATH
from .signing import UrlSigner
from .errors import (
    NewsletterError,
    InvalidSignatureError,
    ExpiredLinkError,
    SubscriberNotFoundError,
    AlreadyUnsubscribedError,
    NoActiveSubscribersError,
)

__all__ = [
    'NewsletterService',
    'render_newsletter_body',
    'CONFIRM_PATH',
    'UNSUBSCRIBE_PATH',
    'UrlSigner',
    'NewsletterError',
    'InvalidSignatureError',
    'ExpiredLinkError',
    'SubscriberNotFoundError',
    'AlreadyUnsubscribedError',
    'NoActiveSubscribersError',
]
