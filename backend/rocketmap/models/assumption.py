import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from ..database import Base
from .canvas import GUID


# Many-to-many: an assumption relates to zero or more blocks of its canvas
assumption_blocks = Table(
    "assumption_blocks",
    Base.metadata,
    Column("assumption_id", GUID(), ForeignKey("assumptions.id", ondelete="CASCADE"), primary_key=True),
    Column("block_id", GUID(), ForeignKey("blocks.id", ondelete="CASCADE"), primary_key=True),
)


class Assumption(Base):
    __tablename__ = "assumptions"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    canvas_id = Column(GUID(), ForeignKey("canvases.id", ondelete="CASCADE"), nullable=False, index=True)
    assumption_text = Column(Text, nullable=False)
    category = Column(String(16), nullable=False, default="product")       # market | product | ops | legal
    status = Column(String(16), nullable=False, default="untested")        # untested | testing | validated | refuted | inconclusive
    risk_level = Column(String(8), nullable=False, default="medium")       # high | medium | low
    severity_score = Column(Integer, nullable=False, default=0)            # 0-10
    confidence_score = Column(Float, nullable=False, default=0.0)          # 0-100
    source = Column(String(8), nullable=False, default="user")             # ai | user
    segment_ids_json = Column(Text, nullable=False, default="[]")          # JSON list of opaque ids
    suggested_experiment = Column(Text, nullable=True)
    suggested_experiment_duration = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_tested_at = Column(DateTime, nullable=True)

    canvas = relationship("Canvas", back_populates="assumptions")
    blocks = relationship("Block", secondary=assumption_blocks, lazy="selectin")
    experiments = relationship(
        "Experiment",
        back_populates="assumption",
        cascade="all, delete-orphan",
        order_by="Experiment.created_at",
    )
