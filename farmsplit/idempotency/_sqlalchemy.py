"""
SQLAlchemy integration — idempotency records in a relational table.

Usage:
    1. Add IdempotencyMixin to a model:

        class CheckoutAttemptTable(Base, IdempotencyMixin):
            __tablename__ = "checkout_attempts"
            id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    2. Create a typed store; values are kept as text:

        store = SQLAlchemyStore(
            session_factory,
            model=CheckoutAttemptTable,
            dump=CheckoutOutcome.to_json,
            load=CheckoutOutcome.from_json,
        )
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar

from kungfu import Error, Ok, Result
from sqlalchemy import DateTime, String, Text, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from farmsplit.idempotency._store import StoreError
from farmsplit.idempotency._types import IdempotencyRecord, RecordState, expiry

T = TypeVar("T")


# ═══════════════════════════════════════════════════════════════════════════════
# Idempotency Mixin — add to your SQLAlchemy model
# ═══════════════════════════════════════════════════════════════════════════════


class IdempotencyMixin:
    """
    Columns:
    - idempotency_key: unique key, the claim itself
    - idempotency_status: "pending" | "completed"
    - idempotency_value: serialized result
    - idempotency_input_hash: fingerprint of the claiming request
    - idempotency_created_at / idempotency_expires_at
    """

    idempotency_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    idempotency_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
    )

    idempotency_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    idempotency_input_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)

    idempotency_created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.now,
    )

    idempotency_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class IdempotencyStatus:
    """Status constants for idempotency_status column."""

    PENDING = "pending"
    COMPLETED = "completed"


# ═══════════════════════════════════════════════════════════════════════════════
# Generic SQLAlchemy Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyStore(Generic[T]):
    """
    Idempotency store over any model carrying IdempotencyMixin.

    set_pending relies on the unique idempotency_key: the insert that loses
    the race hits IntegrityError and reports Ok(False).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        model: type[Any],
        dump: Callable[[T], str],
        load: Callable[[str], T],
    ) -> None:
        self._session_factory = session_factory
        self._model = model
        self._dump = dump
        self._load = load

    async def get(self, key: str) -> Result[IdempotencyRecord[T] | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await self._find(session, key)
                if row is None or _expired(row.idempotency_expires_at):
                    return Ok(None)
                return Ok(self._to_record(row))
        except SQLAlchemyError as e:
            return Error(StoreError(f"Failed to get: {e}", e))

    async def set_pending(
        self,
        key: str,
        ttl: timedelta | None,
        input_hash: str | None = None,
    ) -> Result[bool, StoreError]:
        now = datetime.now()
        try:
            async with self._session_factory() as session:
                # An expired claim is dropped first so the insert below can win.
                await session.execute(
                    delete(self._model).where(
                        self._model.idempotency_key == key,
                        self._model.idempotency_expires_at.is_not(None),
                        self._model.idempotency_expires_at < now,
                    )
                )
                session.add(self._model(
                    idempotency_key=key,
                    idempotency_status=IdempotencyStatus.PENDING,
                    idempotency_input_hash=input_hash,
                    idempotency_created_at=now,
                    idempotency_expires_at=expiry(ttl, now),
                ))
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    return Ok(False)
                return Ok(True)
        except SQLAlchemyError as e:
            return Error(StoreError(f"Failed to set pending: {e}", e))

    async def set_completed(
        self,
        key: str,
        value: T,
        ttl: timedelta | None,
    ) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await self._find(session, key)
                if row is None:
                    return Error(StoreError(f"Record not found: {key}"))

                row.idempotency_status = IdempotencyStatus.COMPLETED
                row.idempotency_value = self._dump(value)
                row.idempotency_expires_at = expiry(ttl)
                await session.commit()
                return Ok(None)
        except SQLAlchemyError as e:
            return Error(StoreError(f"Failed to complete: {e}", e))

    async def delete(self, key: str) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await self._find(session, key)
                if row is None:
                    return Ok(False)
                await session.delete(row)
                await session.commit()
                return Ok(True)
        except SQLAlchemyError as e:
            return Error(StoreError(f"Failed to delete: {e}", e))

    async def _find(self, session: AsyncSession, key: str) -> Any:
        result = await session.execute(
            select(self._model).where(self._model.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    def _to_record(self, row: Any) -> IdempotencyRecord[T]:
        completed = row.idempotency_status == IdempotencyStatus.COMPLETED
        value = (
            self._load(row.idempotency_value)
            if completed and row.idempotency_value is not None
            else None
        )
        return IdempotencyRecord(
            key=row.idempotency_key,
            state=RecordState.COMPLETED if completed else RecordState.PENDING,
            value=value,
            created_at=row.idempotency_created_at,
            expires_at=row.idempotency_expires_at,
            input_hash=row.idempotency_input_hash,
        )


def _expired(expires_at: datetime | None) -> bool:
    return expires_at is not None and datetime.now() > expires_at


__all__ = (
    "IdempotencyMixin",
    "IdempotencyStatus",
    "SQLAlchemyStore",
)
