import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator, CHAR


from ..database import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses CHAR(36) to store UUIDs as strings, compatible with all backends
    including SQLite.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid.UUID(value)
        return value


class Canvas(Base):
    __tablename__ = "canvases"
    __table_args__ = (UniqueConstraint("user_id", "slug", name="uq_canvas_owner_slug"),)

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Written only by a successful viability calculation; NULL means "never scored"
    viability_score = Column(Float, nullable=True, default=None)
    viability_data_json = Column(Text, nullable=True, default=None)
    viability_calculated_at = Column(DateTime, nullable=True, default=None)

    owner = relationship("User", back_populates="canvases")
    blocks = relationship("Block", back_populates="canvas", cascade="all, delete-orphan", lazy="selectin")
    assumptions = relationship("Assumption", back_populates="canvas", cascade="all, delete-orphan")
    segments = relationship("Segment", back_populates="canvas", cascade="all, delete-orphan")


class Block(Base):
    __tablename__ = "blocks"
    __table_args__ = (UniqueConstraint("canvas_id", "block_type", name="uq_block_canvas_type"),)

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    canvas_id = Column(GUID(), ForeignKey("canvases.id", ondelete="CASCADE"), nullable=False, index=True)
    block_type = Column(String(64), nullable=False)
    content_bmc = Column(Text, nullable=False, default="")
    content_lean = Column(Text, nullable=False, default="")
    # Written only by a successful block analysis
    ai_analysis_json = Column(Text, nullable=True, default=None)
    confidence_score = Column(Float, nullable=False, default=0.0)          # 0-1
    risk_score = Column(Float, nullable=False, default=0.0)                # 0-1
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    canvas = relationship("Canvas", back_populates="blocks")
    segments = relationship(
        "Segment",
        secondary="block_segments",
        back_populates="blocks",
        lazy="selectin",
        order_by="Segment.created_at",
    )
