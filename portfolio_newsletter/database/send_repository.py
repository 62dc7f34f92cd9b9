# portfolio_newsletter/database/send_repository.py
import asyncpg
from typing import Optional, List
from datetime import datetime
from uuid import UUID
import uuid
from portfolio_newsletter.newsletter.models import NewsletterSendRecord
from portfolio_newsletter.database.subscriber_repository import _rows_affected
import logging

logger = logging.getLogger(__name__)

SEND_COLUMNS = "id, subject, body, format, recipient_count, sent_at, created_at"

class NewsletterSendRepository:
    """History of newsletters sent from the admin surface"""

    def __init__(self, connection: asyncpg.Connection):
        self.conn = connection

    async def create(
        self,
        subject: str,
        body: str,
        format: str,
        recipient_count: int,
        sent_at: datetime
    ) -> NewsletterSendRecord:
        try:
            result = await self.conn.fetchrow(
                f"""INSERT INTO newsletter_sends (
                        id, subject, body, format, recipient_count, sent_at, created_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $6)
                    RETURNING {SEND_COLUMNS}""",
                uuid.uuid4(), subject, body, format, recipient_count, sent_at
            )
            logger.info(f"Recorded newsletter send '{subject}' to {recipient_count} recipients")
            return NewsletterSendRecord.from_record(result)
        except Exception as e:
            logger.error(f"Failed to record newsletter send '{subject}': {e}")
            raise

    async def get(self, send_id: UUID) -> Optional[NewsletterSendRecord]:
        result = await self.conn.fetchrow(
            f"SELECT {SEND_COLUMNS} FROM newsletter_sends WHERE id = $1",
            send_id
        )
        return NewsletterSendRecord.from_record(result) if result else None

    async def list_page(self, limit: int, offset: int) -> List[NewsletterSendRecord]:
        rows = await self.conn.fetch(
            f"""SELECT {SEND_COLUMNS}
                FROM newsletter_sends
                ORDER BY sent_at DESC
                LIMIT $1 OFFSET $2""",
            limit, offset
        )
        return [NewsletterSendRecord.from_record(row) for row in rows]

    async def count(self) -> int:
        return await self.conn.fetchval("SELECT COUNT(*) FROM newsletter_sends")

    async def delete(self, send_id: UUID) -> bool:
        try:
            status = await self.conn.execute(
                "DELETE FROM newsletter_sends WHERE id = $1",
                send_id
            )
            return _rows_affected(status) > 0
        except Exception as e:
            logger.error(f"Failed to delete newsletter send {send_id}: {e}")
            raise
