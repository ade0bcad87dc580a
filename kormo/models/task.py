"""Job posted by a company. Read-only for this service (CRUD lives in the hosted backend)."""
import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from kormo.database import Base
from kormo.utils.clock import utcnow


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    required_skills = Column(Text, nullable=True)
    experience_level = Column(String(20), nullable=True)  # Entry | Intermediate | Senior | Expert
    is_public = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
