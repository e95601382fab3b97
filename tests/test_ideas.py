from datetime import timedelta

import pytest
from sqlmodel import select

from backend import ideas as idea_actions
from backend.auth import NotAuthenticatedError
from backend.generator import IdeaGenerationError
from backend.models import Idea, Video, VideoComment

from conftest import BASE_TIME, OTHER_USER_ID, USER_ID, FakeGenerator, add_comments, add_video


def test_kickoff_inserts_ideas_and_marks_comments_used(session, generator):
    video = add_video(session)
    comments = add_comments(session, video, 3)

    result = idea_actions.kickoff_idea_generation(session, USER_ID, generator)

    assert result.ideas_created == 3
    assert result.comments_used == 3

    ideas = session.exec(select(Idea)).all()
    assert len(ideas) == 3
    assert {idea.comment_id for idea in ideas} == {c.id for c in comments}
    assert all(idea.user_id == USER_ID for idea in ideas)
    assert ideas[0].research == ["https://youtube.com/watch?v=abc"]

    for comment in session.exec(select(VideoComment)).all():
        assert comment.is_used is True


def test_kickoff_sends_oldest_unused_comments_with_video_title(session, generator):
    video = add_video(session, title="CrewAI Flows Crash Course")
    add_comments(session, video, 2, is_used=True, start=BASE_TIME - timedelta(days=1))
    fresh = add_comments(session, video, 3)

    idea_actions.kickoff_idea_generation(session, USER_ID, generator)

    batch = generator.calls[0]
    assert [c["comment_id"] for c in batch] == [c.id for c in fresh]
    assert batch[0] == {
        "title": "CrewAI Flows Crash Course",
        "comment": "comment 0",
        "video_id": video.id,
        "comment_id": fresh[0].id,
    }


def test_kickoff_limits_batch_and_marks_whole_batch_used(session):
    generator = FakeGenerator(max_ideas=5)
    video = add_video(session)
    comments = add_comments(session, video, 8)

    result = idea_actions.kickoff_idea_generation(session, USER_ID, generator, batch_size=6)

    assert len(generator.calls[0]) == 6
    assert result.ideas_created == 5
    assert result.comments_used == 6

    used = {c.id for c in session.exec(select(VideoComment).where(VideoComment.is_used == True)).all()}  # noqa: E712
    assert used == {c.id for c in comments[:6]}


def test_kickoff_ignores_other_users_comments(session, generator):
    video = add_video(session)
    add_comments(session, video, 2, user_id=OTHER_USER_ID)

    with pytest.raises(idea_actions.NoUnusedCommentsError):
        idea_actions.kickoff_idea_generation(session, USER_ID, generator)
    assert generator.calls == []


def test_kickoff_requires_user(session, generator):
    with pytest.raises(NotAuthenticatedError):
        idea_actions.kickoff_idea_generation(session, None, generator)


def test_kickoff_failure_leaves_comments_unused(session):
    generator = FakeGenerator(error=IdeaGenerationError("Failed to parse Gemini response as JSON."))
    video = add_video(session)
    add_comments(session, video, 2)

    with pytest.raises(IdeaGenerationError):
        idea_actions.kickoff_idea_generation(session, USER_ID, generator)

    assert session.exec(select(Idea)).all() == []
    assert all(not c.is_used for c in session.exec(select(VideoComment)).all())


def test_get_new_ideas_newest_first_and_scoped(session):
    video = add_video(session)
    comment = add_comments(session, video, 1)[0]
    for i, user_id in enumerate([USER_ID, USER_ID, OTHER_USER_ID]):
        session.add(Idea(
            user_id=user_id,
            video_id=video.id,
            comment_id=comment.id,
            video_title=f"idea {i}",
            description="desc",
            created_at=BASE_TIME + timedelta(hours=i),
        ))
    session.commit()

    ideas = idea_actions.get_new_ideas(session, USER_ID)

    assert [idea.video_title for idea in ideas] == ["idea 1", "idea 0"]


def test_get_idea_details(session):
    video = add_video(session, title="Vector stores explained")
    comment = add_comments(session, video, 1)[0]

    details = idea_actions.get_idea_details(session, USER_ID, video.id, comment.id)

    assert details.video_title == "Vector stores explained"
    assert details.comment_text == "comment 0"


def test_get_idea_details_fallbacks(session):
    details = idea_actions.get_idea_details(session, USER_ID, "missing-video", "missing-comment")

    assert details.video_title == "Video not found"
    assert details.comment_text == "Comment not found"


def test_list_video_comments_unused_only(session):
    video = add_video(session)
    add_comments(session, video, 2, is_used=True)
    fresh = add_comments(session, video, 1, start=BASE_TIME + timedelta(days=1))

    assert len(idea_actions.list_video_comments(session, USER_ID, video.id)) == 3
    unused = idea_actions.list_video_comments(session, USER_ID, video.id, unused_only=True)
    assert [c.id for c in unused] == [fresh[0].id]


def test_list_video_comments_other_users_video(session):
    video = add_video(session, user_id=OTHER_USER_ID)

    with pytest.raises(idea_actions.VideoNotFoundError):
        idea_actions.list_video_comments(session, USER_ID, video.id)


def test_kickoff_without_ideas_leaves_comments_unused(session):
    generator = FakeGenerator(max_ideas=0)
    video = add_video(session)
    add_comments(session, video, 3)

    with pytest.raises(IdeaGenerationError, match="No ideas were generated"):
        idea_actions.kickoff_idea_generation(session, USER_ID, generator)

    assert session.exec(select(Idea)).all() == []
    assert all(not c.is_used for c in session.exec(select(VideoComment)).all())


def test_kickoff_commit_failure_rolls_back(session, generator, monkeypatch):
    video = add_video(session)
    add_comments(session, video, 2)

    def failing_commit():
        raise RuntimeError("database is locked")

    monkeypatch.setattr(session, "commit", failing_commit)

    with pytest.raises(RuntimeError, match="database is locked"):
        idea_actions.kickoff_idea_generation(session, USER_ID, generator)

    monkeypatch.undo()
    assert session.exec(select(Idea)).all() == []
    assert all(not c.is_used for c in session.exec(select(VideoComment)).all())


def test_timestamps_default_to_utc():
    video = Video(title="t", user_id=USER_ID)
    assert video.created_at.tzinfo is not None
