"""Idea actions: kickoff generation, list ideas, look up idea details.

Each action authenticates the caller, reads or writes the database and
returns plain model objects. Errors are raised as exceptions and mapped to
HTTP responses by the routes.
"""
from typing import Any, Dict, List, Optional, Protocol

import structlog
from sqlmodel import Session, col, select

from backend.auth import NotAuthenticatedError
from backend.config import get_settings
from backend.generator import IdeaGenerationError
from backend.models import GenerationResult, Idea, IdeaDetails, Video, VideoComment, utcnow

logger = structlog.get_logger(__name__)

VIDEO_NOT_FOUND = "Video not found"
COMMENT_NOT_FOUND = "Comment not found"


class NoUnusedCommentsError(Exception):
    def __init__(self, message: str = "No unused comments found to generate ideas"):
        super().__init__(message)


class VideoNotFoundError(Exception):
    pass


class IdeaGenerator(Protocol):
    def generate(self, comments: List[Dict[str, str]]) -> List[Dict[str, Any]]:
        ...


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise NotAuthenticatedError()
    return user_id


def fetch_unused_comments(session: Session, user_id: str, limit: int) -> List[Dict[str, str]]:
    """Oldest unused comments of the user, joined with their video title."""
    statement = (
        select(Video.title, VideoComment.comment_text, Video.id, VideoComment.id)
        .select_from(VideoComment)
        .join(Video, VideoComment.video_id == Video.id)
        .where(VideoComment.user_id == user_id, VideoComment.is_used == False)  # noqa: E712
        .order_by(VideoComment.created_at)
        .limit(limit)
    )
    return [
        {"title": title, "comment": comment, "video_id": video_id, "comment_id": comment_id}
        for title, comment, video_id, comment_id in session.exec(statement).all()
    ]


def kickoff_idea_generation(
    session: Session,
    user_id: Optional[str],
    generator: IdeaGenerator,
    batch_size: Optional[int] = None,
) -> GenerationResult:
    user_id = _require_user(user_id)
    batch_size = batch_size or get_settings().comment_batch_size

    logger.info("Fetching unused comments", user_id=user_id, limit=batch_size)
    comments = fetch_unused_comments(session, user_id, batch_size)
    logger.debug("Fetched comments", user_id=user_id, count=len(comments))

    if not comments:
        raise NoUnusedCommentsError()

    try:
        generated = generator.generate(comments)
        if not generated:
            raise IdeaGenerationError("No ideas were generated from the comments")

        for idea in generated:
            session.add(Idea(
                user_id=user_id,
                video_id=idea["video_id"],
                comment_id=idea["comment_id"],
                score=idea.get("score") or 0,
                video_title=idea.get("video_title", ""),
                description=idea.get("description", ""),
                research=list(idea.get("research") or []),
            ))

        # Mark every comment in the batch as used
        used_ids = [comment["comment_id"] for comment in comments]
        used_comments = session.exec(
            select(VideoComment).where(
                VideoComment.user_id == user_id,
                col(VideoComment.id).in_(used_ids),
            )
        ).all()
        now = utcnow()
        for comment in used_comments:
            comment.is_used = True
            comment.updated_at = now
            session.add(comment)

        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Error during idea generation and storage", user_id=user_id)
        raise

    logger.info("Ideas generated and stored", user_id=user_id, ideas=len(generated), comments=len(used_comments))
    return GenerationResult(ideas_created=len(generated), comments_used=len(used_comments))


def get_new_ideas(session: Session, user_id: Optional[str]) -> List[Idea]:
    user_id = _require_user(user_id)
    statement = select(Idea).where(Idea.user_id == user_id).order_by(col(Idea.created_at).desc())
    return list(session.exec(statement).all())


def get_idea_details(session: Session, user_id: Optional[str], video_id: str, comment_id: str) -> IdeaDetails:
    user_id = _require_user(user_id)

    video = session.exec(
        select(Video).where(Video.id == video_id, Video.user_id == user_id)
    ).first()
    comment = session.exec(
        select(VideoComment).where(VideoComment.id == comment_id, VideoComment.user_id == user_id)
    ).first()

    return IdeaDetails(
        video_title=video.title if video else VIDEO_NOT_FOUND,
        comment_text=comment.comment_text if comment else COMMENT_NOT_FOUND,
    )


def list_videos(session: Session, user_id: Optional[str]) -> List[Video]:
    user_id = _require_user(user_id)
    statement = select(Video).where(Video.user_id == user_id).order_by(col(Video.created_at).desc())
    return list(session.exec(statement).all())


def list_video_comments(
    session: Session,
    user_id: Optional[str],
    video_id: str,
    unused_only: bool = False,
) -> List[VideoComment]:
    user_id = _require_user(user_id)

    video = session.exec(
        select(Video).where(Video.id == video_id, Video.user_id == user_id)
    ).first()
    if not video:
        raise VideoNotFoundError(VIDEO_NOT_FOUND)

    statement = select(VideoComment).where(
        VideoComment.video_id == video_id,
        VideoComment.user_id == user_id,
    )
    if unused_only:
        statement = statement.where(VideoComment.is_used == False)  # noqa: E712
    return list(session.exec(statement.order_by(VideoComment.created_at)).all())
