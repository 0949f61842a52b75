"""
Content Services

Typed reads and writes over the stories, comments and feedback
collections. Live listings go through the subscription registry.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type

from ..config import COMMENTS, FEEDBACK, STORIES, collection_path
from ..db import SERVER_TIMESTAMP, DocumentBackend, StoredDocument
from ..errors import BackendError, ReadFailure, ValidationError, WriteFailure
from ..models import (
    DEFAULT_FEEDBACK_EMAIL,
    DEFAULT_STORY_IMAGE_URL,
    Comment,
    CommentCreate,
    Feedback,
    FeedbackCreate,
    SortDirection,
    Story,
    StoryCreate,
)
from .identity_service import IdentityBootstrap
from .subscription_registry import Subscription, SubscriptionRegistry

logger = logging.getLogger(__name__)

ORDER_FIELD = "createdAt"


def require_text(field: str, value: Optional[str]) -> str:
    """Reject missing or whitespace-only text."""
    if value is None or not value.strip():
        raise ValidationError(field, "must not be empty")
    return value


class _CollectionService:
    """Shared read/write/subscribe plumbing for one collection."""

    collection: str = ""
    record_cls: Type = None
    direction: SortDirection = SortDirection.DESC

    def __init__(
        self,
        backend: DocumentBackend,
        registry: SubscriptionRegistry,
        auth: IdentityBootstrap,
        app_id: str,
    ):
        self.backend = backend
        self.registry = registry
        self.auth = auth
        self.path = collection_path(app_id, self.collection)

    async def get_by_id(self, doc_id: str, timeout: Optional[float] = None):
        """
        Fetch one record.

        Returns:
            The record, or None when no record has this id

        Raises:
            NotReadyError: Identity bootstrap has not completed
            ReadFailure: The backend failed, the timeout expired, or the
                stored document is malformed
        """
        data = await self._read(doc_id, timeout)
        if data is None:
            return None
        try:
            return self.record_cls.from_document(doc_id, data)
        except ValueError as e:
            logger.error(f"Malformed {self.collection}/{doc_id}: {e}")
            raise ReadFailure(self.collection, doc_id, e) from e

    async def exists(self, doc_id: str, timeout: Optional[float] = None) -> bool:
        """True when a document is stored under doc_id, well-formed or not."""
        return await self._read(doc_id, timeout) is not None

    def subscribe(self) -> Subscription:
        """Live list of every record, ordered by createdAt."""
        return self.registry.subscribe(
            self.collection, ORDER_FIELD, self.direction, transform=self.to_records
        )

    def to_records(self, docs: List[StoredDocument]) -> List[Any]:
        return [self.record_cls.from_document(doc.id, doc.data) for doc in docs]

    async def _read(self, doc_id: str, timeout: Optional[float]) -> Optional[Dict[str, Any]]:
        self.auth.require_ready()
        try:
            return await asyncio.wait_for(
                self.backend.get_document(self.path, doc_id), timeout
            )
        except (BackendError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to read {self.collection}/{doc_id}: {e}")
            raise ReadFailure(self.collection, doc_id, e) from e

    async def _write(
        self,
        data: Dict[str, Any],
        doc_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        data = {**data, ORDER_FIELD: SERVER_TIMESTAMP}
        try:
            if doc_id is None:
                doc_id = await asyncio.wait_for(
                    self.backend.add_document(self.path, data), timeout
                )
            else:
                await asyncio.wait_for(
                    self.backend.set_document(self.path, doc_id, data), timeout
                )
        except (BackendError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to write to {self.collection}: {e}")
            raise WriteFailure(self.collection, e) from e

        logger.info(f"Wrote {self.collection}/{doc_id}")
        return doc_id


class StoryService(_CollectionService):
    """Stories, newest first. Published by the site's author."""

    collection = STORIES
    record_cls = Story
    direction = SortDirection.DESC

    async def create(self, story: StoryCreate, timeout: Optional[float] = None) -> str:
        """
        Publish a story attributed to the current identity.

        A blank image URL is stored as DEFAULT_STORY_IMAGE_URL.

        Returns:
            The new story id
        """
        identity = self.auth.require_ready()
        return await self._write(self._document(story, identity.id), timeout=timeout)

    async def publish(
        self,
        title: str,
        content: str,
        image_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        return await self.create(
            StoryCreate(title=title, content=content, image_url=image_url),
            timeout=timeout,
        )

    async def put(
        self,
        story_id: str,
        story: StoryCreate,
        author_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Write a story under a fixed id, replacing any existing one."""
        identity = self.auth.require_ready()
        data = self._document(story, author_id or identity.id)
        return await self._write(data, doc_id=story_id, timeout=timeout)

    @staticmethod
    def _document(story: StoryCreate, author_id: str) -> Dict[str, Any]:
        image_url = story.image_url.strip() if story.image_url else ""
        return {
            "title": require_text("title", story.title),
            "content": require_text("content", story.content),
            "imageUrl": image_url or DEFAULT_STORY_IMAGE_URL,
            "authorId": author_id,
        }


class CommentService(_CollectionService):
    """Comments, oldest first."""

    collection = COMMENTS
    record_cls = Comment
    direction = SortDirection.ASC

    async def create(
        self,
        comment: CommentCreate,
        user_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Add a comment to a story.

        The story id is not checked against the stories collection; comments
        are only created from a view already bound to a story.

        Args:
            comment: Comment fields
            user_id: Attribute to this user instead of the current identity
                (sample content)
        """
        identity = self.auth.require_ready()
        data = {
            "storyId": require_text("storyId", comment.story_id),
            "commentText": require_text("commentText", comment.comment_text),
            "commenterName": require_text("commenterName", comment.commenter_name),
            "userId": user_id or identity.id,
        }
        return await self._write(data, timeout=timeout)

    def subscribe_for_story(self, story_id: str) -> Subscription:
        """
        Live comments for one story.

        Subscribes to the whole comments collection and filters on storyId
        client-side, so each snapshot costs the global comment count.
        """
        def for_story(docs: List[StoredDocument]) -> List[Comment]:
            return [c for c in self.to_records(docs) if c.story_id == story_id]

        return self.registry.subscribe(
            self.collection, ORDER_FIELD, self.direction, transform=for_story
        )


class FeedbackService(_CollectionService):
    """General feedback, newest first."""

    collection = FEEDBACK
    record_cls = Feedback
    direction = SortDirection.DESC

    async def create(
        self,
        feedback: FeedbackCreate,
        user_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Submit feedback. A missing email is stored as an empty string."""
        identity = self.auth.require_ready()
        data = {
            "name": require_text("name", feedback.name),
            "email": (feedback.email or DEFAULT_FEEDBACK_EMAIL).strip(),
            "message": require_text("message", feedback.message),
            "userId": user_id or identity.id,
        }
        return await self._write(data, timeout=timeout)


class ContentRepository:
    """The three content collections behind one handle."""

    def __init__(
        self,
        backend: DocumentBackend,
        registry: SubscriptionRegistry,
        auth: IdentityBootstrap,
        app_id: str,
    ):
        self.stories = StoryService(backend, registry, auth, app_id)
        self.comments = CommentService(backend, registry, auth, app_id)
        self.feedback = FeedbackService(backend, registry, auth, app_id)
