"""
SQL Rate Limiter
================
Rate limit counters stored in the relational database.
"""

import math
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import DateTime, Integer, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from garage_comms.database import Base, as_utc
from .models import RateLimitInfo, RateLimiter

logger = structlog.get_logger(__name__)


class RateLimitCounter(Base):
    """One counter row per rate limit key."""
    __tablename__ = "rate_limit_counters"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reset_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SQLRateLimiter(RateLimiter):
    """
    Fixed window counter in the ``rate_limit_counters`` table.

    The row is read with ``SELECT ... FOR UPDATE`` and incremented in the
    same transaction, so concurrent requests serialize on the row.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        rate: int = 5,
        window: int = 3600,
    ):
        self.session_factory = session_factory
        self.rate = rate
        self.window = window

    async def hit(self, key: str) -> RateLimitInfo:
        try:
            return await self._hit(key)
        except IntegrityError:
            # Another request inserted the first row for this key; the row
            # exists now, so the locked read path applies.
            logger.debug("rate_limit_insert_race", key=key)
            return await self._hit(key)

    async def _hit(self, key: str) -> RateLimitInfo:
        async with self.session_factory() as session:
            async with session.begin():
                now = datetime.now(timezone.utc)
                row = (
                    await session.execute(
                        select(RateLimitCounter)
                        .where(RateLimitCounter.key == key)
                        .with_for_update()
                    )
                ).scalar_one_or_none()

                if row is None:
                    row = RateLimitCounter(
                        key=key, count=0, reset_at=now + timedelta(seconds=self.window)
                    )
                    session.add(row)
                elif as_utc(row.reset_at) <= now:
                    row.count = 0
                    row.reset_at = now + timedelta(seconds=self.window)

                reset_at = as_utc(row.reset_at)

                if row.count >= self.rate:
                    return RateLimitInfo(
                        allowed=False,
                        remaining=0,
                        limit=self.rate,
                        reset_at=int(reset_at.timestamp()),
                        retry_after=max(1, math.ceil((reset_at - now).total_seconds())),
                    )

                row.count += 1
                return RateLimitInfo(
                    allowed=True,
                    remaining=self.rate - row.count,
                    limit=self.rate,
                    reset_at=int(reset_at.timestamp()),
                )

    async def reset(self, key: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(RateLimitCounter, key)
                if row is not None:
                    await session.delete(row)
