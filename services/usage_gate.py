from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import GuestUsage, UserQuota

logger = logging.getLogger(__name__)

GUEST_MAX_MESSAGES = 5
DAILY_FREE_MESSAGES = 5
UNLIMITED_MESSAGES = 999999
DEFAULT_GUEST_KEY = "guest"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class UsageStatus:
    can_make_request: bool
    remaining_messages: int
    requires_auth: bool
    requires_payment: bool


@dataclass(frozen=True)
class UsageRecord:
    consumed: bool
    status: UsageStatus


class UsageGate:
    """Daily request allowance for guests and signed-in users.

    Guests are counted per key (the client address) in rows that carry their
    own expiry at the next UTC midnight, so stale rows are ignored without any
    background cleanup. Signed-in users get a free daily allowance that resets
    on the first request of a new UTC day; paid users are unlimited.

    Consumption uses conditional updates, so two concurrent requests can never
    both take the last remaining unit.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        guest_max_messages: int = GUEST_MAX_MESSAGES,
        daily_free_messages: int = DAILY_FREE_MESSAGES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._guest_max_messages = guest_max_messages
        self._daily_free_messages = daily_free_messages
        self._clock = clock

    async def check_usage(
        self,
        user_id: str | None = None,
        guest_key: str = DEFAULT_GUEST_KEY,
    ) -> UsageStatus:
        async with self._session_factory() as session:
            if user_id:
                quota = await self._load_user(session, user_id)
                await session.commit()
                return self._user_status(quota)
            count = await self._guest_count(session, guest_key)
            return self._guest_status(count)

    async def record_usage(
        self,
        user_id: str | None = None,
        guest_key: str = DEFAULT_GUEST_KEY,
    ) -> UsageRecord:
        async with self._session_factory() as session:
            if user_id:
                consumed = await self._consume_user_message(session, user_id)
                quota = await self._load_user(session, user_id)
                await session.commit()
                status = self._user_status(quota)
            else:
                consumed = await self._consume_guest_message(session, guest_key)
                await session.commit()
                status = self._guest_status(await self._guest_count(session, guest_key))

        if not consumed:
            logger.info("Usage not recorded for %s: allowance exhausted", user_id or "guest")
        return UsageRecord(consumed=consumed, status=status)

    async def reset_usage(self, user_id: str) -> UsageStatus:
        async with self._session_factory() as session:
            quota = await self._load_user(session, user_id)
            quota.daily_free_messages = self._daily_free_messages
            quota.last_reset_date = self._today()
            await session.commit()
            logger.info("Usage reset for user %s", user_id)
            return self._user_status(quota)

    def _today(self) -> date:
        return self._clock().date()

    def _next_midnight(self) -> datetime:
        return datetime.combine(self._today() + timedelta(days=1), time.min)

    async def _load_user(self, session: AsyncSession, user_id: str) -> UserQuota:
        today = self._today()
        quota = await session.get(UserQuota, user_id, populate_existing=True)
        if quota is None:
            return await self._create_user(session, user_id, today)
        if quota.last_reset_date != today:
            # Only the first request of the day resets; later ones keep its decrements.
            await session.execute(
                update(UserQuota)
                .where(UserQuota.user_id == user_id, UserQuota.last_reset_date != today)
                .values(daily_free_messages=self._daily_free_messages, last_reset_date=today)
                .execution_options(synchronize_session=False)
            )
            quota = await session.get(UserQuota, user_id, populate_existing=True)
        return quota

    async def _create_user(self, session: AsyncSession, user_id: str, today: date) -> UserQuota:
        quota = UserQuota(
            user_id=user_id,
            daily_free_messages=self._daily_free_messages,
            paid=False,
            last_reset_date=today,
        )
        session.add(quota)
        try:
            await session.flush()
        except IntegrityError:
            # Another request created the row first.
            await session.rollback()
            return await self._load_user(session, user_id)
        return quota

    async def _consume_user_message(self, session: AsyncSession, user_id: str) -> bool:
        quota = await self._load_user(session, user_id)
        if quota.paid:
            return True
        result = await session.execute(
            update(UserQuota)
            .where(UserQuota.user_id == user_id, UserQuota.daily_free_messages > 0)
            .values(daily_free_messages=UserQuota.daily_free_messages - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _user_status(self, quota: UserQuota) -> UsageStatus:
        if quota.paid:
            return UsageStatus(
                can_make_request=True,
                remaining_messages=UNLIMITED_MESSAGES,
                requires_auth=False,
                requires_payment=False,
            )
        remaining = max(0, quota.daily_free_messages)
        return UsageStatus(
            can_make_request=remaining > 0,
            remaining_messages=remaining,
            requires_auth=False,
            requires_payment=remaining <= 0,
        )

    async def _guest_count(self, session: AsyncSession, guest_key: str) -> int:
        result = await session.execute(
            select(GuestUsage.count).where(
                GuestUsage.guest_key == guest_key,
                GuestUsage.expires_at > self._clock(),
            )
        )
        return result.scalar_one_or_none() or 0

    async def _increment_live_guest(self, session: AsyncSession, guest_key: str) -> bool:
        result = await session.execute(
            update(GuestUsage)
            .where(
                GuestUsage.guest_key == guest_key,
                GuestUsage.expires_at > self._clock(),
                GuestUsage.count < self._guest_max_messages,
            )
            .values(count=GuestUsage.count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _consume_guest_message(self, session: AsyncSession, guest_key: str) -> bool:
        if self._guest_max_messages <= 0:
            return False
        if await self._increment_live_guest(session, guest_key):
            return True

        # The previous day's row is restarted in place.
        result = await session.execute(
            update(GuestUsage)
            .where(GuestUsage.guest_key == guest_key, GuestUsage.expires_at <= self._clock())
            .values(count=1, expires_at=self._next_midnight())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return True

        exists = await session.execute(select(GuestUsage.guest_key).where(GuestUsage.guest_key == guest_key))
        if exists.scalar_one_or_none() is not None:
            return False

        session.add(GuestUsage(guest_key=guest_key, count=1, expires_at=self._next_midnight()))
        try:
            await session.flush()
        except IntegrityError:
            # Another request created the row first.
            await session.rollback()
            return await self._increment_live_guest(session, guest_key)
        return True

    def _guest_status(self, count: int) -> UsageStatus:
        return UsageStatus(
            can_make_request=count < self._guest_max_messages,
            remaining_messages=max(0, self._guest_max_messages - count),
            requires_auth=count >= self._guest_max_messages,
            requires_payment=False,
        )
