"""Cache for suitability results so a repeated profile/task pair does not call Gemini again."""
import uuid
from sqlalchemy import Column, String, Text, DateTime
from kormo.database import Base
from kormo.utils.clock import utcnow


class AnalysisCache(Base):
    __tablename__ = "analysis_cache"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    cache_key = Column(String(160), nullable=False, unique=True, index=True)  # derived from profile prefix + task id
    analysis_result = Column(Text, nullable=False)  # AnalysisResult as JSON
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
