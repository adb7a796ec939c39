"""
UserSummary model: the AI-written profile of a user's conversations.
"""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, JSONType, utcnow


class UserSummary(BaseModel):
    """One row per user, regenerated wholesale on request."""

    __tablename__ = "user_summaries"

    user_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    summary = Column(Text, nullable=True)
    summary_ar = Column(Text, nullable=True)
    interests = Column(JSONType, default=list, nullable=False)
    topics = Column(JSONType, default=list, nullable=False)
    preferred_models = Column(JSONType, default=list, nullable=False)
    conversation_style = Column(String(100), nullable=True)
    statistics = Column(JSONType, default=dict, nullable=False)
    last_updated = Column(DateTime, default=utcnow, nullable=False)
    generated_by = Column(String(100), nullable=True)

    # Relationships
    user = relationship("User", back_populates="summary")

    def content_for(self, language: str) -> str | None:
        if language == "ar":
            return self.summary_ar or self.summary
        return self.summary
