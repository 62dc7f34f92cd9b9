# portfolio_newsletter/database/__init__.py
from .connection import get_db_connection, release_db_connection, connection_dependency, DatabaseConnection
from .subscriber_repository import SubscriberRepository
from .send_repository import NewsletterSendRepository

__all__ = [
    "get_db_connection",
    "release_db_connection",
    "connection_dependency",
    "DatabaseConnection",
    "SubscriberRepository",
    "NewsletterSendRepository",
]
