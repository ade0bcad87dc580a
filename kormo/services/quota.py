"""
Per-account quota for AI features: fixed 60-second window stored on the profile row.
- Free: 3 calls/minute (suitability, CV analysis, find best matches)
- Premium: 10 calls/minute
Check and increment happen in one conditional UPDATE, so concurrent requests
from the same account cannot both slip under the limit.
"""
import enum
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import DateTime, case, literal, or_, update
from sqlalchemy.orm import Session

from kormo.models.profile import Profile, Tier
from kormo.utils.clock import utcnow

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class QuotaFeature(str, enum.Enum):
    SUITABILITY = "suitability"
    CV_ANALYSIS = "cv_analysis"
    FIND_MATCHES = "find_matches"


# Calls per window, per feature and tier
QUOTA_LIMITS: dict[QuotaFeature, dict[Tier, int]] = {
    QuotaFeature.SUITABILITY: {Tier.FREE: 3, Tier.PREMIUM: 10},
    QuotaFeature.CV_ANALYSIS: {Tier.FREE: 3, Tier.PREMIUM: 10},
    QuotaFeature.FIND_MATCHES: {Tier.FREE: 3, Tier.PREMIUM: 10},
}


class ProfileNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    limit: int
    retry_after_seconds: int = 0

    @classmethod
    def allow(cls, limit: int) -> "QuotaDecision":
        return cls(allowed=True, limit=limit)

    @classmethod
    def deny(cls, limit: int, retry_after_seconds: int) -> "QuotaDecision":
        return cls(allowed=False, limit=limit, retry_after_seconds=retry_after_seconds)


def limit_for(feature: QuotaFeature, tier: Tier) -> int:
    return QUOTA_LIMITS[feature][tier]


def retry_after(window_started_at: datetime, now: datetime) -> int:
    elapsed = (now - window_started_at).total_seconds()
    return max(1, math.ceil(WINDOW_SECONDS - elapsed))


def denial_message(decision: QuotaDecision, tier: Tier) -> str:
    who = "Premium users" if tier == Tier.PREMIUM else "Free users"
    message = (
        f"Rate limit exceeded. {who} can make {decision.limit} AI requests per minute. "
        f"Please wait {decision.retry_after_seconds} seconds and try again."
    )
    if tier == Tier.FREE:
        message += " Upgrade to Premium for higher limits!"
    return message


class QuotaStore:
    """Quota state lives on the profile row; every method is a single round trip plus commit."""

    def __init__(self, db: Session):
        self._db = db

    def try_consume(
        self,
        account_id: str,
        tier: Tier,
        feature: QuotaFeature = QuotaFeature.SUITABILITY,
        now: datetime | None = None,
    ) -> QuotaDecision:
        """
        Allowed: window expired (counter restarts at 1) or counter below limit (incremented).
        Denied: counter at limit; nothing is written.
        """
        now = now or utcnow()
        limit = limit_for(feature, tier)
        expired = or_(
            Profile.window_started_at.is_(None),
            Profile.window_started_at <= now - timedelta(seconds=WINDOW_SECONDS),
        )
        stmt = (
            update(Profile)
            .where(Profile.id == account_id, or_(expired, Profile.calls_in_window < limit))
            .values(
                calls_in_window=case((expired, 1), else_=Profile.calls_in_window + 1),
                window_started_at=case(
                    (expired, literal(now, DateTime())),
                    else_=Profile.window_started_at,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        result = self._db.execute(stmt)
        self._db.commit()
        if result.rowcount == 1:
            return QuotaDecision.allow(limit)

        window_started_at = self._db.query(Profile.window_started_at).filter(Profile.id == account_id).scalar()
        if window_started_at is None:
            # No row matched and no window: the profile does not exist
            raise ProfileNotFoundError(account_id)
        decision = QuotaDecision.deny(limit, retry_after(window_started_at, now))
        logger.info(
            "Quota denied for %s (%s, %s tier): retry in %ss",
            account_id, feature.value, tier.value, decision.retry_after_seconds,
        )
        return decision

    def calls_in_window(self, account_id: str, now: datetime | None = None) -> int:
        """Calls counted in the current window; 0 once the window has expired."""
        now = now or utcnow()
        row = (
            self._db.query(Profile.window_started_at, Profile.calls_in_window)
            .filter(Profile.id == account_id)
            .first()
        )
        if row is None or row.window_started_at is None:
            return 0
        if (now - row.window_started_at).total_seconds() >= WINDOW_SECONDS:
            return 0
        return row.calls_in_window or 0
