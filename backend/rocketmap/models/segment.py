import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from ..database import Base
from .canvas import GUID


# Many-to-many: a customer segment can be linked to any block of its canvas
block_segments = Table(
    "block_segments",
    Base.metadata,
    Column("block_id", GUID(), ForeignKey("blocks.id", ondelete="CASCADE"), primary_key=True),
    Column("segment_id", GUID(), ForeignKey("segments.id", ondelete="CASCADE"), primary_key=True),
)


class Segment(Base):
    __tablename__ = "segments"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    canvas_id = Column(GUID(), ForeignKey("canvases.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    early_adopter_flag = Column(Boolean, nullable=False, default=False)
    priority_score = Column(Integer, nullable=False, default=50)           # 0-100
    demographics = Column(Text, nullable=False, default="")
    psychographics = Column(Text, nullable=False, default="")
    behavioral = Column(Text, nullable=False, default="")
    geographic = Column(Text, nullable=False, default="")
    estimated_size = Column(String(255), nullable=False, default="")
    color_hex = Column(String(7), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    canvas = relationship("Canvas", back_populates="segments")
    blocks = relationship("Block", secondary=block_segments, back_populates="segments")
