import enum
import uuid
from sqlalchemy import Column, String, DateTime, Integer, Text, Enum, ForeignKey, CheckConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Sport(str, enum.Enum):
    football = "Football"
    basketball = "Basketball"
    motorsports = "Motorsports"
    gaming = "Gaming"
    other = "Other"


class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (
        CheckConstraint("views >= 0", name="ck_videos_views_non_negative"),
        CheckConstraint("likes >= 0", name="ck_videos_likes_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    sport = Column(
        Enum(Sport, name="sport", values_callable=lambda members: [m.value for m in members]),
        nullable=False,
    )
    videoUrl = Column(String, nullable=False)
    thumbnailUrl = Column(String, nullable=False)
    uploaderId = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    # Set by the database clock so ordering holds across API processes
    uploadDate = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    views = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
