"""Review model definitions."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from scheduling.database import Base


class Review(Base):
    """A client's rating of one completed appointment."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, unique=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(String)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    appointment = relationship("Appointment")
    client = relationship("User", foreign_keys=[client_id])
    provider = relationship("User", foreign_keys=[provider_id])

    __table_args__ = (
        CheckConstraint('rating BETWEEN 1 AND 5', name='ck_review_rating_range'),
        Index('idx_reviews_provider', 'provider_id', 'created_at'),
    )
