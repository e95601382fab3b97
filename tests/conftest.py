import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GEMINI_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from backend.auth import get_current_user_id
from backend.database import get_session
from backend.main import app, get_idea_generator
from backend.models import Video, VideoComment

USER_ID = "user_123"
OTHER_USER_ID = "user_456"
BASE_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeGenerator:
    """Returns one idea per comment (up to max_ideas) and records its input."""

    def __init__(self, max_ideas=5, error=None):
        self.max_ideas = max_ideas
        self.error = error
        self.calls = []

    def generate(self, comments):
        self.calls.append(comments)
        if self.error:
            raise self.error
        return [
            {
                "video_id": c["video_id"],
                "comment_id": c["comment_id"],
                "score": 7,
                "video_title": f"Idea from {c['title']}",
                "description": f"A video answering: {c['comment']}",
                "research": ["https://youtube.com/watch?v=abc"],
            }
            for c in comments[: self.max_ideas]
        ]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def client(session, generator):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID
    app.dependency_overrides[get_idea_generator] = lambda: generator
    yield TestClient(app)
    app.dependency_overrides.clear()


def add_video(session, title="How to build agents", user_id=USER_ID, video_id=None, created_at=BASE_TIME):
    video = Video(title=title, user_id=user_id, created_at=created_at)
    if video_id:
        video.id = video_id
    session.add(video)
    session.commit()
    session.refresh(video)
    return video


def add_comments(session, video, count, user_id=USER_ID, is_used=False, start=BASE_TIME):
    comments = []
    for i in range(count):
        comment = VideoComment(
            video_id=video.id,
            user_id=user_id,
            comment_text=f"comment {i}",
            is_used=is_used,
            created_at=start + timedelta(minutes=i),
            updated_at=start + timedelta(minutes=i),
        )
        session.add(comment)
        comments.append(comment)
    session.commit()
    for comment in comments:
        session.refresh(comment)
    return comments
