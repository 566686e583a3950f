"""Periodic refresh-token cleanup.

Run with ``python -m tokenstore.worker`` (loop) or ``--once`` for a single
pass from cron. Late or skipped passes only let the table grow.
"""

import argparse
import asyncio
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from tokenstore.controllers import refresh_token_controller
from tokenstore.core.config import settings
from tokenstore.core.logging import setup_logging
from tokenstore.db.database import engine, session_scope

logger = logging.getLogger(__name__)


async def run_cleanup_once(
    factory: async_sessionmaker[AsyncSession] | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """One cleanup pass in its own transaction."""
    async with session_scope(factory) as db:
        return await refresh_token_controller.cleanup_tokens(db, older_than=now)


class CleanupWorker:
    def __init__(
        self,
        interval_seconds: float = settings.TOKEN_CLEANUP_INTERVAL_SECONDS,
        factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.interval_seconds = interval_seconds
        self.factory = factory
        self.passes = 0
        self._stopped = asyncio.Event()

    async def run(self) -> None:
        """Main worker loop"""
        logger.info("Token cleanup worker started (interval %ss)", self.interval_seconds)
        while not self._stopped.is_set():
            try:
                await run_cleanup_once(self.factory)
            except SQLAlchemyError:
                logger.exception("Token cleanup pass failed; retrying next interval")
            self.passes += 1

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Token cleanup worker stopped after %s passes", self.passes)

    def stop(self) -> None:
        self._stopped.set()


async def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Delete used and expired refresh tokens.")
    parser.add_argument("--once", action="store_true", help="run a single pass and exit")
    args = parser.parse_args(argv)

    setup_logging(settings.LOG_LEVEL)
    worker = CleanupWorker()
    try:
        if args.once:
            await run_cleanup_once()
        else:
            await worker.run()
    finally:
        worker.stop()
        await engine.dispose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
