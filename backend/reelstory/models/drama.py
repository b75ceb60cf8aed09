import uuid
from datetime import datetime
from sqlalchemy import String, Integer, Boolean, ForeignKey, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from reelstory.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Drama(Base):
    __tablename__ = "dramas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    episodes: Mapped[list["Episode"]] = relationship("Episode", back_populates="drama", cascade="all, delete-orphan")


class Episode(Base):
    __tablename__ = "episodes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    video_url: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    thumbnail_url: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    drama_id: Mapped[str] = mapped_column(String(36), ForeignKey("dramas.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    drama: Mapped["Drama"] = relationship("Drama", back_populates="episodes")
    favorites: Mapped[list["Favorite"]] = relationship("Favorite", back_populates="episode", cascade="all, delete-orphan")
