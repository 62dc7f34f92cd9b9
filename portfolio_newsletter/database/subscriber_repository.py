# portfolio_newsletter/database/subscriber_repository.py
import asyncpg
from typing import Optional, List
from datetime import datetime
from uuid import UUID
import uuid
from portfolio_newsletter.newsletter.models import Subscriber, SubscriberStats
import logging

logger = logging.getLogger(__name__)

SUBSCRIBER_COLUMNS = "id, email, confirmed_at, unsubscribed_at, created_at, updated_at"

def _rows_affected(status: str) -> int:
    # asyncpg returns the command tag, e.g. "UPDATE 1" or "DELETE 0"
    try:
        return int(status.split()[-1])
    except (ValueError, IndexError, AttributeError):
        return 0

class SubscriberRepository:
    def __init__(self, connection: asyncpg.Connection):
        self.conn = connection

    async def get_by_email(self, email: str) -> Optional[Subscriber]:
        try:
            result = await self.conn.fetchrow(
                f"SELECT {SUBSCRIBER_COLUMNS} FROM newsletter_subscribers WHERE email = $1",
                email
            )
            return Subscriber.from_record(result) if result else None
        except Exception as e:
            logger.error(f"Failed to get subscriber by email {email}: {e}")
            raise

    async def get_by_id(self, subscriber_id: UUID) -> Optional[Subscriber]:
        try:
            result = await self.conn.fetchrow(
                f"SELECT {SUBSCRIBER_COLUMNS} FROM newsletter_subscribers WHERE id = $1",
                subscriber_id
            )
            return Subscriber.from_record(result) if result else None
        except Exception as e:
            logger.error(f"Failed to get subscriber {subscriber_id}: {e}")
            raise

    async def confirm(self, email: str, confirmed_at: datetime) -> Subscriber:
        """Upsert by email: confirmed and subscribed, whatever the previous state"""
        try:
            query = f"""
                INSERT INTO newsletter_subscribers (
                    id, email, confirmed_at, unsubscribed_at, created_at, updated_at
                ) VALUES ($1, $2, $3, NULL, $3, $3)
                ON CONFLICT (email)
                DO UPDATE SET
                    confirmed_at = EXCLUDED.confirmed_at,
                    unsubscribed_at = NULL,
                    updated_at = EXCLUDED.updated_at
                RETURNING {SUBSCRIBER_COLUMNS}
            """

            result = await self.conn.fetchrow(query, uuid.uuid4(), email, confirmed_at)
            logger.info(f"Confirmed newsletter subscriber: {email}")
            return Subscriber.from_record(result)

        except Exception as e:
            logger.error(f"Failed to confirm subscriber {email}: {e}")
            raise

    async def unsubscribe(self, email: str, unsubscribed_at: datetime) -> bool:
        """Mark a subscribed email as unsubscribed; False when nothing changed"""
        try:
            status = await self.conn.execute(
                """UPDATE newsletter_subscribers
                   SET unsubscribed_at = $2, updated_at = $2
                   WHERE email = $1 AND unsubscribed_at IS NULL""",
                email, unsubscribed_at
            )
            return _rows_affected(status) > 0
        except Exception as e:
            logger.error(f"Failed to unsubscribe {email}: {e}")
            raise

    async def unsubscribe_by_id(self, subscriber_id: UUID, unsubscribed_at: datetime) -> Optional[Subscriber]:
        try:
            result = await self.conn.fetchrow(
                f"""UPDATE newsletter_subscribers
                    SET unsubscribed_at = COALESCE(unsubscribed_at, $2), updated_at = $2
                    WHERE id = $1
                    RETURNING {SUBSCRIBER_COLUMNS}""",
                subscriber_id, unsubscribed_at
            )
            return Subscriber.from_record(result) if result else None
        except Exception as e:
            logger.error(f"Failed to unsubscribe subscriber {subscriber_id}: {e}")
            raise

    async def delete(self, subscriber_id: UUID) -> bool:
        try:
            status = await self.conn.execute(
                "DELETE FROM newsletter_subscribers WHERE id = $1",
                subscriber_id
            )
            deleted = _rows_affected(status) > 0
            if deleted:
                logger.info(f"Deleted newsletter subscriber {subscriber_id}")
            return deleted
        except Exception as e:
            logger.error(f"Failed to delete subscriber {subscriber_id}: {e}")
            raise

    async def list_page(self, limit: int, offset: int) -> List[Subscriber]:
        rows = await self.conn.fetch(
            f"""SELECT {SUBSCRIBER_COLUMNS}
                FROM newsletter_subscribers
                ORDER BY created_at DESC
                LIMIT $1 OFFSET $2""",
            limit, offset
        )
        return [Subscriber.from_record(row) for row in rows]

    async def list_active(self) -> List[Subscriber]:
        rows = await self.conn.fetch(
            f"""SELECT {SUBSCRIBER_COLUMNS}
                FROM newsletter_subscribers
                WHERE confirmed_at IS NOT NULL AND unsubscribed_at IS NULL
                ORDER BY created_at DESC"""
        )
        return [Subscriber.from_record(row) for row in rows]

    async def stats(self) -> SubscriberStats:
        stats = await self.conn.fetchrow("""
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE confirmed_at IS NOT NULL AND unsubscribed_at IS NULL) AS active,
                COUNT(*) FILTER (WHERE confirmed_at IS NULL AND unsubscribed_at IS NULL) AS pending,
                COUNT(*) FILTER (WHERE unsubscribed_at IS NOT NULL) AS unsubscribed
            FROM newsletter_subscribers
        """)
        return SubscriberStats(**dict(stats))
