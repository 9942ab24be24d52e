"""
OTP Store
=========
Storage interface for OTP records and the in-memory implementation.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from .models import OTPPurpose, OTPRecord, OTPStatus


class OTPStore(ABC):
    """
    Keyed storage for OTP records.

    At most one ISSUED record exists per (phone, country_code, purpose).
    """

    @abstractmethod
    async def replace_active(self, record: OTPRecord) -> int:
        """
        Invalidate every ISSUED record for the record's key and insert it.

        Returns:
            Number of records invalidated
        """

    @abstractmethod
    async def get_active(
        self, phone: str, country_code: str, purpose: OTPPurpose
    ) -> Optional[OTPRecord]:
        """Most recent ISSUED record for the key, expired or not."""

    @abstractmethod
    async def increment_attempts(self, record_id: str) -> Optional[int]:
        """
        Atomically add one attempt to an ISSUED record.

        Returns:
            The new count, or None once the record has left ISSUED
        """

    @abstractmethod
    async def set_status(
        self,
        record_id: str,
        status: OTPStatus,
        verified_at: Optional[datetime] = None,
    ) -> bool:
        """
        Move an ISSUED record to ``status``.

        Returns:
            False when another caller already moved it out of ISSUED
        """

    @abstractmethod
    async def cleanup(self, cutoff: datetime) -> int:
        """Delete records that expired before ``cutoff``. Returns the count."""


class InMemoryOTPStore(OTPStore):
    """
    Process-local OTP store.

    For development and testing only.
    Use SQLOTPStore when more than one process serves OTP requests.
    """

    def __init__(self):
        self._records: Dict[str, OTPRecord] = {}
        self._lock = asyncio.Lock()

    async def replace_active(self, record: OTPRecord) -> int:
        async with self._lock:
            invalidated = 0
            for existing in self._records.values():
                if (
                    existing.status == OTPStatus.ISSUED
                    and existing.phone == record.phone
                    and existing.country_code == record.country_code
                    and existing.purpose == record.purpose
                ):
                    existing.status = OTPStatus.INVALIDATED
                    invalidated += 1
            self._records[record.id] = replace(record)
            return invalidated

    async def get_active(
        self, phone: str, country_code: str, purpose: OTPPurpose
    ) -> Optional[OTPRecord]:
        async with self._lock:
            candidates = [
                r for r in self._records.values()
                if r.status == OTPStatus.ISSUED
                and r.phone == phone
                and r.country_code == country_code
                and r.purpose == purpose
            ]
            if not candidates:
                return None
            return replace(max(candidates, key=lambda r: r.created_at))

    async def increment_attempts(self, record_id: str) -> Optional[int]:
        async with self._lock:
            record = self._records.get(record_id)
            if record is None or record.status != OTPStatus.ISSUED:
                return None
            record.attempts += 1
            return record.attempts

    async def set_status(
        self,
        record_id: str,
        status: OTPStatus,
        verified_at: Optional[datetime] = None,
    ) -> bool:
        async with self._lock:
            record = self._records.get(record_id)
            if record is None or record.status != OTPStatus.ISSUED:
                return False
            record.status = status
            if verified_at is not None:
                record.verified_at = verified_at
            return True

    async def cleanup(self, cutoff: datetime) -> int:
        async with self._lock:
            stale = [rid for rid, r in self._records.items() if r.expires_at < cutoff]
            for rid in stale:
                del self._records[rid]
            return len(stale)

    async def get(self, record_id: str) -> Optional[OTPRecord]:
        """Fetch a record by id (inspection and tests)."""
        async with self._lock:
            record = self._records.get(record_id)
            return replace(record) if record else None

    def __len__(self) -> int:
        return len(self._records)
