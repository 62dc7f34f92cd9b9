# portfolio_newsletter/database/connection.py
import asyncpg
from typing import Optional, AsyncIterator
import logging

logger = logging.getLogger(__name__)

class DatabaseConnection:
    _pool: Optional[asyncpg.Pool] = None
    _database_url: Optional[str] = None

    @classmethod
    def configure(cls, database_url: str):
        """Set the DSN used when the pool is first created"""
        cls._database_url = database_url

    @classmethod
    async def get_pool(cls) -> asyncpg.Pool:
        """Get or create database connection pool"""
        if cls._pool is None:
            try:
                if not cls._database_url:
                    raise ValueError("DATABASE_URL is not configured")

                cls._pool = await asyncpg.create_pool(
                    cls._database_url,
                    min_size=1,
                    max_size=10,
                    command_timeout=60
                )
                logger.info("Database connection pool created")
            except Exception as e:
                logger.error(f"Failed to create database pool: {e}")
                raise
        return cls._pool

    @classmethod
    async def close_pool(cls):
        """Close database connection pool"""
        if cls._pool:
            await cls._pool.close()
            cls._pool = None
            logger.info("Database connection pool closed")

async def get_db_connection():
    """Get database connection from pool"""
    pool = await DatabaseConnection.get_pool()
    return await pool.acquire()

async def release_db_connection(connection):
    """Release database connection back to pool"""
    pool = await DatabaseConnection.get_pool()
    await pool.release(connection)

async def connection_dependency() -> AsyncIterator[asyncpg.Connection]:
    """FastAPI dependency: one pooled connection per request"""
    connection = await get_db_connection()
    try:
        yield connection
    finally:
        await release_db_connection(connection)
