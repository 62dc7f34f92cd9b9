# portfolio_newsletter/newsletter/errors.py
class NewsletterError(Exception):
    """Base newsletter error"""
    pass

class SignatureError(NewsletterError):
    """A signed link could not be trusted"""
    pass

class InvalidSignatureError(SignatureError):
    def __init__(self, reason: str = "Invalid signature"):
        self.reason = reason
        super().__init__(reason)

class ExpiredLinkError(SignatureError):
    def __init__(self, expires: int):
        self.expires = expires
        super().__init__(f"Link expired at {expires}")

class SubscriberNotFoundError(NewsletterError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Subscriber not found: {identifier}")

class AlreadyUnsubscribedError(NewsletterError):
    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Already unsubscribed: {email}")

class NoActiveSubscribersError(NewsletterError):
    pass
