import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from ..database import Base
from .canvas import GUID


class Experiment(Base):
    __tablename__ = "experiments"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    assumption_id = Column(GUID(), ForeignKey("assumptions.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(16), nullable=False)                      # survey | interview | mvp | ab_test | research | other
    description = Column(Text, nullable=False)
    success_criteria = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="planned")  # planned | completed
    result = Column(String(16), nullable=True)                      # supports | contradicts | inconclusive
    evidence = Column(Text, nullable=False, default="")
    source_url = Column(String(1024), nullable=True)
    cost_estimate = Column(String(50), nullable=True)
    duration_estimate = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    assumption = relationship("Assumption", back_populates="experiments")
