import uuid
import enum
from sqlalchemy import Column, String, Text, Integer, DateTime
from kormo.database import Base
from kormo.utils.clock import utcnow


class ProfileRole(str, enum.Enum):
    WORKER = "WORKER"
    COMPANY = "COMPANY"


class Tier(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default=ProfileRole.WORKER.value)

    skills = Column(Text, nullable=True)
    experience = Column(Text, nullable=True)
    education = Column(Text, nullable=True)

    subscription_plan = Column(String(50), nullable=True)
    subscription_status = Column(String(20), nullable=True)  # "active" | "expired" | "cancelled"
    subscription_expires_on = Column(DateTime, nullable=True)

    # Quota state: fixed 60s window for AI calls, shared by all AI features
    window_started_at = Column(DateTime, nullable=True)
    calls_in_window = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def tier(self) -> Tier:
        """Premium while the subscription is active and not past its expiry date."""
        if self.subscription_status != "active":
            return Tier.FREE
        if self.subscription_expires_on is not None and self.subscription_expires_on <= utcnow():
            return Tier.FREE
        return Tier.PREMIUM

    @property
    def has_career_details(self) -> bool:
        return any((value or "").strip() for value in (self.skills, self.experience, self.education))
