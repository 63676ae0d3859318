"""Per-user credit ledger.

The ledger lives in the ``credits`` sub-document of ``users/{user_id}``. Every
mutation is a single-document update whose filter re-checks the condition that
triggered it, so concurrent requests never clobber each other's fields and
re-applying a rollover or downgrade that already happened is a no-op.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional

from dateutil.relativedelta import relativedelta
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from sitfit.schemas.credits import (UNLIMITED_CREDITS, PaymentRecord, Plan,
                                    SubscriptionType, UserCredits)
from sitfit.utils.errors import LedgerUnavailable
from sitfit.utils.utils import utcnow

logger = logging.getLogger(__name__)

FREE_ALLOTMENT = 2
RESET_PERIOD_DAYS = 30

PLAN_PERIODS = {
    Plan.MONTHLY: relativedelta(months=1),
    Plan.YEARLY: relativedelta(years=1),
}


def subscription_end_date(start: datetime, plan: Plan) -> datetime:
    """End of a subscription bought at ``start``, one calendar month or year later."""
    return start + PLAN_PERIODS[Plan(plan)]


class CreditLedger:
    """Tracks free credits, premium status and usage for each user."""

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        free_allotment: int = FREE_ALLOTMENT,
        reset_period_days: int = RESET_PERIOD_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the ledger.

        Args:
            collection: The ``users`` collection
            free_allotment: Credits granted to free users every period
            reset_period_days: Days between free-credit resets
            clock: Source of the current naive UTC time
        """
        self.collection = collection
        self.free_allotment = free_allotment
        self.reset_period = timedelta(days=reset_period_days)
        self.clock = clock

    @contextmanager
    def _store_errors(self, user_id: str, operation: str) -> Iterator[None]:
        try:
            yield
        except PyMongoError as e:
            raise LedgerUnavailable(user_id, operation) from e

    async def get_or_init(self, user_id: str) -> UserCredits:
        """Return the user's credits, creating, downgrading or resetting them as needed."""
        now = self.clock()
        with self._store_errors(user_id, "get_or_init"):
            document = await self.collection.find_one({"_id": user_id}, {"credits": 1})
            if document is None or "credits" not in document:
                return await self._initialise(user_id, now)

            credits = UserCredits.model_validate(document["credits"])
            if self._is_expired(credits, now):
                credits = await self._downgrade(user_id, now)
            if self._is_due_for_reset(credits, now):
                credits = await self._reset(user_id, now)
            return credits

    async def deduct(self, user_id: str) -> bool:
        """Use one credit. Returns False, without mutating anything, when none is left."""
        credits = await self.get_or_init(user_id)

        with self._store_errors(user_id, "deduct"):
            if credits.is_premium:
                result = await self.collection.update_one(
                    {"_id": user_id, "credits.isPremium": True},
                    {"$inc": {"credits.totalUsed": 1}},
                )
                if result.modified_count:
                    return True
                logger.info(f"Premium subscription of user {user_id} lapsed during deduction")
            elif credits.credits <= 0:
                return False

            # Decrement and usage count move together, and only while a credit remains
            result = await self.collection.update_one(
                {"_id": user_id, "credits.isPremium": False, "credits.credits": {"$gt": 0}},
                {"$inc": {"credits.credits": -1, "credits.totalUsed": 1}},
            )

        if not result.modified_count:
            logger.info(f"No credit left to deduct for user {user_id}")
            return False
        return True

    async def upgrade(self, user_id: str, plan: Plan, payment: Optional[PaymentRecord] = None) -> bool:
        """Activate premium for ``plan``.

        Only called after a payment has been verified. When ``payment`` is given
        it is recorded in the same write, and the write only happens if that
        payment was not recorded before.

        Returns:
            bool: False if the payment had already been recorded, True otherwise
        """
        await self.get_or_init(user_id)

        now = self.clock()
        fields: Dict[str, Any] = {
            "credits.isPremium": True,
            "credits.subscriptionType": SubscriptionType.PREMIUM.value,
            "credits.subscriptionEndDate": subscription_end_date(now, plan),
            "credits.credits": UNLIMITED_CREDITS,
            "credits.lastResetDate": now,
            "updatedAt": now,
        }
        query: Dict[str, Any] = {"_id": user_id}
        if payment is not None:
            payment_field = f"paymentHistory.{payment.payment_id}"
            fields[payment_field] = payment.model_dump(by_alias=True)
            query[payment_field] = {"$exists": False}

        with self._store_errors(user_id, "upgrade"):
            result = await self.collection.update_one(query, {"$set": fields})

        if not result.matched_count:
            return False

        logger.info(f"User {user_id} upgraded to premium ({Plan(plan).value}) until {fields['credits.subscriptionEndDate']}")
        return True

    async def check_active(self, user_id: str) -> bool:
        """Whether the user has an active premium subscription. Expired ones are downgraded."""
        credits = await self.get_or_init(user_id)
        return credits.is_premium

    async def has_payment(self, user_id: str, payment_id: str) -> bool:
        with self._store_errors(user_id, "has_payment"):
            document = await self.collection.find_one(
                {"_id": user_id, f"paymentHistory.{payment_id}": {"$exists": True}},
                {"_id": 1},
            )
        return document is not None

    async def payment_history(self, user_id: str) -> List[PaymentRecord]:
        """Recorded payments of the user, newest first."""
        with self._store_errors(user_id, "payment_history"):
            document = await self.collection.find_one({"_id": user_id}, {"paymentHistory": 1})

        history = (document or {}).get("paymentHistory") or {}
        records = [PaymentRecord.model_validate(record) for record in history.values()]
        return sorted(records, key=lambda record: record.date, reverse=True)

    async def _initialise(self, user_id: str, now: datetime) -> UserCredits:
        initial = UserCredits(
            credits=self.free_allotment,
            is_premium=False,
            subscription_type=SubscriptionType.FREE,
            last_reset_date=now,
            total_used=0,
        )
        try:
            await self.collection.update_one(
                {"_id": user_id, "credits": {"$exists": False}},
                {
                    "$set": {"credits": initial.model_dump(by_alias=True), "updatedAt": now},
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
            )
        except DuplicateKeyError:
            # A concurrent request created the record first
            return await self._read(user_id)

        logger.info(f"Initialised credits for user {user_id}")
        return initial

    async def _read(self, user_id: str) -> UserCredits:
        document = await self.collection.find_one({"_id": user_id}, {"credits": 1})
        return UserCredits.model_validate(document["credits"])

    def _is_expired(self, credits: UserCredits, now: datetime) -> bool:
        return (
            credits.is_premium
            and credits.subscription_end_date is not None
            and credits.subscription_end_date < now
        )

    def _is_due_for_reset(self, credits: UserCredits, now: datetime) -> bool:
        return not credits.is_premium and now - credits.last_reset_date >= self.reset_period

    async def _downgrade(self, user_id: str, now: datetime) -> UserCredits:
        document = await self.collection.find_one_and_update(
            {"_id": user_id, "credits.isPremium": True, "credits.subscriptionEndDate": {"$lt": now}},
            {
                "$set": {
                    "credits.isPremium": False,
                    "credits.subscriptionType": SubscriptionType.FREE.value,
                    "credits.credits": self.free_allotment,
                    "credits.subscriptionEndDate": None,
                    "credits.lastResetDate": now,
                    "updatedAt": now,
                }
            },
            projection={"credits": 1},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            return await self._read(user_id)

        logger.info(f"Premium subscription of user {user_id} expired, downgraded to free")
        return UserCredits.model_validate(document["credits"])

    async def _reset(self, user_id: str, now: datetime) -> UserCredits:
        document = await self.collection.find_one_and_update(
            {
                "_id": user_id,
                "credits.isPremium": False,
                "credits.lastResetDate": {"$lte": now - self.reset_period},
            },
            {"$set": {"credits.credits": self.free_allotment, "credits.lastResetDate": now, "updatedAt": now}},
            projection={"credits": 1},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            return await self._read(user_id)

        logger.info(f"Monthly free credits reset for user {user_id}")
        return UserCredits.model_validate(document["credits"])
