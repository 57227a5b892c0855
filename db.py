# db.py
import logging
from fastapi import FastAPI, Request
from psycopg_pool import AsyncConnectionPool
from psycopg.rows import dict_row

logger = logging.getLogger(__name__)


async def getDB(request: Request):
    """
    FastAPI dependency that lends one pooled connection per request.

    Each app owns its pool (app.state.pool), opened lazily on the first call
    from the app's own settings. Rows come back as dicts (record['id']).
    Leaving the `async with` block commits on success and rolls back on
    error, then returns the connection to the pool.
    """
    state = request.app.state

    if state.pool is None:
        logger.info("Initializing connection pool")
        pool = AsyncConnectionPool(
            conninfo=state.settings.DATABASE_URL,
            min_size=state.settings.DB_POOL_MIN_SIZE,
            max_size=state.settings.DB_POOL_MAX_SIZE,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        try:
            await pool.open()
            logger.info("Connection pool opened")
        except Exception:
            logger.exception("Could not open connection pool")
            raise
        state.pool = pool

    async with state.pool.connection() as conn:
        yield conn


async def close_pool(app: FastAPI):
    if app.state.pool is not None:
        await app.state.pool.close()
        logger.info("Connection pool closed")
        app.state.pool = None
