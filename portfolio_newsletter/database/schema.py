# portfolio_newsletter/database/schema.py
import asyncio
import logging
from typing import List

import asyncpg
from dotenv import load_dotenv
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from portfolio_newsletter.models.newsletter import Base

logger = logging.getLogger(__name__)

def schema_statements() -> List[str]:
    """CREATE statements for every newsletter table and index, idempotent"""
    dialect = postgresql.dialect()
    statements = []
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)))
        for index in sorted(table.indexes, key=lambda idx: idx.name):
            statements.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)))
    return statements

async def ensure_newsletter_schema(connection: asyncpg.Connection):
    """Create newsletter tables and indexes if they are missing"""
    async with connection.transaction():
        for statement in schema_statements():
            await connection.execute(statement)
    logger.info("Newsletter schema is up to date")

async def _main():
    from portfolio_newsletter.config import get_settings

    settings = get_settings()
    conn = await asyncpg.connect(settings.database_url)
    try:
        await ensure_newsletter_schema(conn)
        print("✅ Newsletter tables and indexes created")
    finally:
        await conn.close()

if __name__ == "__main__":
    load_dotenv()
    asyncio.run(_main())
