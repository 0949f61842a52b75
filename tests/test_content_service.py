"""
Content Service Tests

Stories, comments and feedback through the repository: field defaults,
validation, server timestamps, per-story comment views, and failures.
"""

import asyncio

import pytest

from recital_sync.app import RecitalApp
from recital_sync.db import InMemoryBackend
from recital_sync.errors import NotReadyError, ReadFailure, ValidationError, WriteFailure
from recital_sync.models import (
    DEFAULT_STORY_IMAGE_URL,
    Comment,
    CommentCreate,
    Feedback,
    FeedbackCreate,
    Story,
    StoryCreate,
)

STORIES_PATH = "artifacts/test-app/public/data/stories"


def _story(**overrides):
    fields = {"title": "Opening Night", "content": "The curtain rose."}
    fields.update(overrides)
    return StoryCreate(**fields)


def _comment(story_id, text="Beautiful!", name="Meena"):
    return CommentCreate(story_id=story_id, comment_text=text, commenter_name=name)


class TestStoryService:
    """Publishing and reading stories."""

    @pytest.mark.asyncio
    async def test_create_assigns_id_author_and_timestamp(self, app):
        story_id = await app.repository.stories.create(_story())

        story = await app.repository.stories.get_by_id(story_id)

        assert isinstance(story, Story)
        assert story.id == story_id
        assert story.title == "Opening Night"
        assert story.author_id == app.identity.id
        assert story.created_at is not None
        assert not story.is_pending

    @pytest.mark.asyncio
    @pytest.mark.parametrize("image_url", [None, "", "   "])
    async def test_blank_image_url_gets_placeholder(self, app, image_url):
        story_id = await app.repository.stories.create(_story(image_url=image_url))

        story = await app.repository.stories.get_by_id(story_id)

        assert story.image_url == DEFAULT_STORY_IMAGE_URL

    @pytest.mark.asyncio
    async def test_explicit_image_url_kept(self, app):
        url = "https://example.com/stage.jpg"
        story_id = await app.repository.stories.publish("Encore", "One more.", url)

        story = await app.repository.stories.get_by_id(story_id)

        assert story.image_url == url

    @pytest.mark.asyncio
    async def test_stored_document_uses_site_field_names(self, app, backend):
        story_id = await app.repository.stories.create(_story())

        data = await backend.get_document(STORIES_PATH, story_id)

        assert set(data) == {"title", "content", "imageUrl", "authorId", "createdAt"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["title", "content"])
    async def test_empty_fields_rejected_before_write(self, app, backend, field):
        with pytest.raises(ValidationError) as exc_info:
            await app.repository.stories.create(_story(**{field: "  "}))

        assert exc_info.value.field == field
        assert backend.documents(STORIES_PATH) == []

    @pytest.mark.asyncio
    async def test_put_replaces_under_fixed_id(self, app):
        stories = app.repository.stories
        await stories.put("fixed", _story(title="Draft"))
        await stories.put("fixed", _story(title="Final"), author_id="guest-author")

        story = await stories.get_by_id("fixed")

        assert story.title == "Final"
        assert story.author_id == "guest-author"

    @pytest.mark.asyncio
    async def test_missing_story_is_none(self, app):
        assert await app.repository.stories.get_by_id("no-such-story") is None

    @pytest.mark.asyncio
    async def test_live_listing_newest_first(self, app):
        stories = app.repository.stories
        first = await stories.publish("First", "a")
        second = await stories.publish("Second", "b")

        async with stories.subscribe() as sub:
            snapshot = await sub.get(timeout=1)

        assert [s.id for s in snapshot] == [second, first]
        assert all(isinstance(s, Story) for s in snapshot)


class TestCommentService:
    """Comments and the per-story view."""

    @pytest.mark.asyncio
    async def test_comment_attributed_to_identity(self, app):
        comment_id = await app.repository.comments.create(_comment("s1"))

        comment = await app.repository.comments.get_by_id(comment_id)

        assert isinstance(comment, Comment)
        assert comment.story_id == "s1"
        assert comment.user_id == app.identity.id
        assert comment.created_at is not None

    @pytest.mark.asyncio
    async def test_comment_on_unknown_story_is_accepted(self, app):
        """No referential check between comments and stories."""
        comment_id = await app.repository.comments.create(_comment("never-published"))

        assert comment_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs, field", [
        ({"text": ""}, "commentText"),
        ({"name": " "}, "commenterName"),
    ])
    async def test_empty_fields_rejected(self, app, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            await app.repository.comments.create(_comment("s1", **kwargs))

        assert exc_info.value.field == field

    @pytest.mark.asyncio
    async def test_view_only_shows_its_story(self, app):
        comments = app.repository.comments
        s1_view = comments.subscribe_for_story("s1")
        s2_view = comments.subscribe_for_story("s2")
        assert await s1_view.get(timeout=1) == []
        assert await s2_view.get(timeout=1) == []

        await comments.create(_comment("s1", text="Bravo"))

        s1_snapshot = await s1_view.get(timeout=1)
        s2_snapshot = await s2_view.get(timeout=1)
        assert [c.comment_text for c in s1_snapshot] == ["Bravo"]
        assert s2_snapshot == []

        s1_view.cancel()
        s2_view.cancel()

    @pytest.mark.asyncio
    async def test_view_oldest_first(self, app):
        comments = app.repository.comments
        await comments.create(_comment("s1", text="first"))
        await comments.create(_comment("s2", text="elsewhere"))
        await comments.create(_comment("s1", text="second"))

        async with comments.subscribe_for_story("s1") as view:
            snapshot = await view.get(timeout=1)

        assert [c.comment_text for c in snapshot] == ["first", "second"]


class TestFeedbackService:
    """General feedback."""

    @pytest.mark.asyncio
    async def test_missing_email_stored_as_empty_string(self, app):
        feedback_id = await app.repository.feedback.create(
            FeedbackCreate(name="Rajesh", message="Wonderful show")
        )

        feedback = await app.repository.feedback.get_by_id(feedback_id)

        assert isinstance(feedback, Feedback)
        assert feedback.email == ""
        assert feedback.user_id == app.identity.id

    @pytest.mark.asyncio
    async def test_email_kept(self, app):
        feedback_id = await app.repository.feedback.create(
            FeedbackCreate(name="Priya", email=" priya@example.com ", message="Lovely")
        )

        feedback = await app.repository.feedback.get_by_id(feedback_id)

        assert feedback.email == "priya@example.com"

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, app):
        with pytest.raises(ValidationError, match="message"):
            await app.repository.feedback.create(FeedbackCreate(name="Priya", message=""))

    @pytest.mark.asyncio
    async def test_explicit_user_id(self, app):
        feedback_id = await app.repository.feedback.create(
            FeedbackCreate(name="Guest", message="Hi"), user_id="sample-user-9"
        )

        feedback = await app.repository.feedback.get_by_id(feedback_id)

        assert feedback.user_id == "sample-user-9"


class TestFailures:
    """NotReady, write and read failures, and timeouts."""

    @pytest.mark.asyncio
    async def test_operations_before_ready_raise_not_ready(self, backend, settings):
        app = RecitalApp(backend, settings)

        with pytest.raises(NotReadyError):
            await app.repository.stories.create(_story())
        with pytest.raises(NotReadyError):
            await app.repository.feedback.get_by_id("x")
        with pytest.raises(NotReadyError):
            app.repository.comments.subscribe_for_story("s1")
        assert backend.collections == {}

    @pytest.mark.asyncio
    async def test_rejected_write_raises_write_failure(self, app, backend):
        backend.fail_writes = True

        with pytest.raises(WriteFailure) as exc_info:
            await app.repository.comments.create(_comment("s1"))

        assert exc_info.value.collection == "comments"

    @pytest.mark.asyncio
    async def test_rejected_read_raises_read_failure(self, app, backend):
        backend.fail_reads = True

        with pytest.raises(ReadFailure) as exc_info:
            await app.repository.stories.get_by_id("s1")

        assert exc_info.value.doc_id == "s1"

    @pytest.mark.asyncio
    async def test_malformed_record_raises_read_failure(self, app, backend):
        await backend.set_document(STORIES_PATH, "broken", {"title": "no content"})

        with pytest.raises(ReadFailure) as exc_info:
            await app.repository.stories.get_by_id("broken")

        assert exc_info.value.doc_id == "broken"
        assert await app.repository.stories.exists("broken")
        assert not await app.repository.stories.exists("absent")

    @pytest.mark.asyncio
    async def test_slow_write_times_out(self, app, backend, monkeypatch):
        async def slow_add(path, data):
            await asyncio.sleep(10)

        monkeypatch.setattr(backend, "add_document", slow_add)

        with pytest.raises(WriteFailure):
            await app.repository.feedback.create(
                FeedbackCreate(name="Priya", message="Hi"), timeout=0.01
            )

    @pytest.mark.asyncio
    async def test_slow_read_times_out(self, app, backend, monkeypatch):
        async def slow_get(path, doc_id):
            await asyncio.sleep(10)

        monkeypatch.setattr(backend, "get_document", slow_get)

        with pytest.raises(ReadFailure):
            await app.repository.stories.get_by_id("s1", timeout=0.01)
