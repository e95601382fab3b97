import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def timestamp_column() -> Column:
    return Column(DateTime(timezone=True), nullable=False)


class Video(SQLModel, table=True):
    __tablename__ = "videos"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    title: str
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())

    comments: List["VideoComment"] = Relationship(back_populates="video")


class VideoComment(SQLModel, table=True):
    __tablename__ = "video_comments"

    id: str = Field(default_factory=new_id, primary_key=True)
    video_id: str = Field(foreign_key="videos.id", index=True)
    user_id: str = Field(index=True)
    comment_text: str
    is_used: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())

    video: Optional[Video] = Relationship(back_populates="comments")


class Idea(SQLModel, table=True):
    __tablename__ = "ideas"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    video_id: str = Field(foreign_key="videos.id")
    comment_id: str = Field(foreign_key="video_comments.id")
    score: float = Field(default=0)
    video_title: str
    description: str
    research: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())


# Response shapes (not tables)

class IdeaDetails(SQLModel):
    video_title: str
    comment_text: str


class GenerationResult(SQLModel):
    ideas_created: int
    comments_used: int
