import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from portfolio_newsletter.database.schema import ensure_newsletter_schema, schema_statements
from portfolio_newsletter.database.send_repository import NewsletterSendRepository
from portfolio_newsletter.database.subscriber_repository import SubscriberRepository, _rows_affected


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _subscriber_record(**overrides):
    record = {
        "id": uuid.uuid4(),
        "email": "reader@example.com",
        "confirmed_at": NOW,
        "unsubscribed_at": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    record.update(overrides)
    return record


@pytest.mark.parametrize("status,expected", [
    ("UPDATE 1", 1),
    ("UPDATE 0", 0),
    ("DELETE 3", 3),
    ("", 0),
    (None, 0),
])
def test_rows_affected(status, expected):
    assert _rows_affected(status) == expected


@pytest.mark.asyncio
async def test_confirm_is_a_single_upsert():
    conn = AsyncMock()
    conn.fetchrow.return_value = _subscriber_record()

    subscriber = await SubscriberRepository(conn).confirm("reader@example.com", NOW)

    query, _, email, confirmed_at = conn.fetchrow.await_args.args
    assert "ON CONFLICT (email)" in query
    assert "unsubscribed_at = NULL" in query
    assert email == "reader@example.com"
    assert confirmed_at == NOW
    assert isinstance(subscriber.id, str)
    assert subscriber.is_active


@pytest.mark.asyncio
async def test_unsubscribe_only_touches_subscribed_rows():
    conn = AsyncMock()
    conn.execute.side_effect = ["UPDATE 1", "UPDATE 0"]
    repository = SubscriberRepository(conn)

    assert await repository.unsubscribe("reader@example.com", NOW) is True
    assert await repository.unsubscribe("reader@example.com", NOW) is False
    assert "unsubscribed_at IS NULL" in conn.execute.await_args.args[0]


@pytest.mark.asyncio
async def test_get_by_email_missing_returns_none():
    conn = AsyncMock()
    conn.fetchrow.return_value = None

    assert await SubscriberRepository(conn).get_by_email("ghost@example.com") is None


@pytest.mark.asyncio
async def test_stats_maps_counts():
    conn = AsyncMock()
    conn.fetchrow.return_value = {"total": 4, "active": 2, "pending": 1, "unsubscribed": 1}

    stats = await SubscriberRepository(conn).stats()

    assert stats.active == 2
    assert stats.unsubscribed == 1


@pytest.mark.asyncio
async def test_list_active_filters_in_sql():
    conn = AsyncMock()
    conn.fetch.return_value = [_subscriber_record(), _subscriber_record(email="other@example.com")]

    rows = await SubscriberRepository(conn).list_active()

    assert [row.email for row in rows] == ["reader@example.com", "other@example.com"]
    assert "confirmed_at IS NOT NULL AND unsubscribed_at IS NULL" in conn.fetch.await_args.args[0]


@pytest.mark.asyncio
async def test_database_errors_propagate():
    conn = AsyncMock()
    conn.fetchrow.side_effect = RuntimeError("connection lost")

    with pytest.raises(RuntimeError):
        await SubscriberRepository(conn).get_by_email("reader@example.com")


@pytest.mark.asyncio
async def test_send_repository_create_and_delete():
    send_id = uuid.uuid4()
    conn = AsyncMock()
    conn.fetchrow.return_value = {
        "id": send_id,
        "subject": "Issue 1",
        "body": "Body",
        "format": "plaintext",
        "recipient_count": 2,
        "sent_at": NOW,
        "created_at": NOW,
    }
    conn.execute.return_value = "DELETE 1"
    repository = NewsletterSendRepository(conn)

    record = await repository.create("Issue 1", "Body", "plaintext", 2, NOW)

    assert record.id == str(send_id)
    assert record.recipient_count == 2
    assert await repository.delete(send_id) is True


def test_schema_statements_are_idempotent():
    statements = schema_statements()
    joined = "\n".join(statements)

    assert "CREATE TABLE IF NOT EXISTS newsletter_subscribers" in joined
    assert "CREATE TABLE IF NOT EXISTS newsletter_sends" in joined
    assert "UNIQUE (email)" in joined
    assert "CREATE INDEX IF NOT EXISTS ix_newsletter_subscribers_unsubscribed_at" in joined
    assert "CREATE INDEX IF NOT EXISTS ix_newsletter_sends_sent_at" in joined


@pytest.mark.asyncio
async def test_ensure_schema_runs_in_transaction():
    conn = MagicMock()
    conn.execute = AsyncMock()
    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=None)
    transaction.__aexit__ = AsyncMock(return_value=False)
    conn.transaction.return_value = transaction

    await ensure_newsletter_schema(conn)

    conn.transaction.assert_called_once()
    assert conn.execute.await_count == len(schema_statements())
