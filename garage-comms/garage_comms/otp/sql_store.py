"""
SQL OTP Store
=============
OTP records persisted through SQLAlchemy.
"""

from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import DateTime, Index, Integer, String, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from garage_comms.database import Base, as_utc
from .models import OTPChannel, OTPPurpose, OTPRecord, OTPStatus
from .store import OTPStore

logger = structlog.get_logger(__name__)


class OTPVerification(Base):
    """Row in ``otp_verifications``."""
    __tablename__ = "otp_verifications"
    __table_args__ = (
        Index("ix_otp_recipient", "phone", "country_code", "purpose", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    country_code: Mapped[str] = mapped_column(String(5), nullable=False)
    purpose: Mapped[str] = mapped_column(String(32), nullable=False)
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    channel: Mapped[str] = mapped_column(String(16), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_record(self) -> OTPRecord:
        return OTPRecord(
            id=self.id,
            phone=self.phone,
            country_code=self.country_code,
            purpose=OTPPurpose(self.purpose),
            code_hash=self.code_hash,
            expires_at=as_utc(self.expires_at),
            created_at=as_utc(self.created_at),
            channel=OTPChannel(self.channel),
            email=self.email,
            status=OTPStatus(self.status),
            attempts=self.attempts,
            max_attempts=self.max_attempts,
            verified_at=as_utc(self.verified_at),
        )

    @classmethod
    def from_record(cls, record: OTPRecord) -> "OTPVerification":
        return cls(
            id=record.id,
            phone=record.phone,
            country_code=record.country_code,
            purpose=record.purpose.value,
            code_hash=record.code_hash,
            channel=record.channel.value,
            email=record.email,
            status=record.status.value,
            attempts=record.attempts,
            max_attempts=record.max_attempts,
            expires_at=record.expires_at,
            created_at=record.created_at,
            verified_at=record.verified_at,
        )


class SQLOTPStore(OTPStore):
    """OTP store backed by the ``otp_verifications`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def replace_active(self, record: OTPRecord) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(OTPVerification)
                    .where(
                        OTPVerification.phone == record.phone,
                        OTPVerification.country_code == record.country_code,
                        OTPVerification.purpose == record.purpose.value,
                        OTPVerification.status == OTPStatus.ISSUED.value,
                    )
                    .values(status=OTPStatus.INVALIDATED.value)
                )
                session.add(OTPVerification.from_record(record))
                return result.rowcount or 0

    async def get_active(
        self, phone: str, country_code: str, purpose: OTPPurpose
    ) -> Optional[OTPRecord]:
        async with self.session_factory() as session:
            row = (
                await session.execute(
                    select(OTPVerification)
                    .where(
                        OTPVerification.phone == phone,
                        OTPVerification.country_code == country_code,
                        OTPVerification.purpose == purpose.value,
                        OTPVerification.status == OTPStatus.ISSUED.value,
                    )
                    .order_by(OTPVerification.created_at.desc())
                    .limit(1)
                )
            ).scalar_one_or_none()
            return row.to_record() if row else None

    async def increment_attempts(self, record_id: str) -> Optional[int]:
        async with self.session_factory() as session:
            async with session.begin():
                # Single UPDATE: the database applies concurrent increments in turn
                result = await session.execute(
                    update(OTPVerification)
                    .where(
                        OTPVerification.id == record_id,
                        OTPVerification.status == OTPStatus.ISSUED.value,
                    )
                    .values(attempts=OTPVerification.attempts + 1)
                )
                if result.rowcount != 1:
                    return None
                attempts = (
                    await session.execute(
                        select(OTPVerification.attempts).where(OTPVerification.id == record_id)
                    )
                ).scalar_one()
                return attempts

    async def set_status(
        self,
        record_id: str,
        status: OTPStatus,
        verified_at: Optional[datetime] = None,
    ) -> bool:
        values = {"status": status.value}
        if verified_at is not None:
            values["verified_at"] = verified_at
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(OTPVerification)
                    .where(
                        OTPVerification.id == record_id,
                        OTPVerification.status == OTPStatus.ISSUED.value,
                    )
                    .values(**values)
                )
                return result.rowcount == 1

    async def cleanup(self, cutoff: datetime) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(OTPVerification).where(OTPVerification.expires_at < cutoff)
                )
                count = result.rowcount or 0
        logger.info("otp_cleanup_completed", deleted=count)
        return count
