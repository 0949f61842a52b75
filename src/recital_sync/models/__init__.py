"""
Content Models

Pydantic models for stories, comments and feedback. Attributes are
snake_case; stored documents use the camelCase field names of the site's
collections (imageUrl, authorId, storyId, ...) through field aliases.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# Re-export identity models
from .identity import AuthState, Identity, IdentitySource

DEFAULT_STORY_IMAGE_URL = (
    "https://placehold.co/800x600/DDA0DD/4B0082?text=Default+Story+Image"
)
DEFAULT_FEEDBACK_EMAIL = ""
PENDING_LABEL = "pending"


class SortDirection(str, Enum):
    """Ordering of a live query."""

    ASC = "asc"
    DESC = "desc"


class SeedOutcome(str, Enum):
    """Result of a seed run."""

    PRESENT = "present"  # sentinel found, nothing written
    INSERTED = "inserted"
    FAILED = "failed"


class SeedState(str, Enum):
    """Seed provisioner lifecycle."""

    NOT_CHECKED = "not_checked"
    PROBING = "probing"
    PRESENT = "present"
    INSERTING = "inserting"
    DONE = "done"
    FAILED = "failed"


class _Record(BaseModel):
    """Fields shared by every stored record."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @property
    def is_pending(self) -> bool:
        """True while the backend has not yet assigned createdAt."""
        return self.created_at is None

    def display_created_at(self, fmt: str = "%Y-%m-%d %H:%M") -> str:
        if self.created_at is None:
            return PENDING_LABEL
        return self.created_at.strftime(fmt)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]):
        """Build a record from a stored document and its id."""
        return cls.model_validate({**data, "id": doc_id})

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})


# -----------------------------------------------------------------------------
# Stories
# -----------------------------------------------------------------------------

class StoryCreate(BaseModel):
    """Fields for publishing a story."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    content: str
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class Story(_Record):
    """A narrative story shown on the stories page."""

    title: str
    content: str
    image_url: str = Field(default=DEFAULT_STORY_IMAGE_URL, alias="imageUrl")
    author_id: Optional[str] = Field(default=None, alias="authorId")


# -----------------------------------------------------------------------------
# Comments
# -----------------------------------------------------------------------------

class CommentCreate(BaseModel):
    """Fields for commenting on a story."""

    model_config = ConfigDict(populate_by_name=True)

    story_id: str = Field(alias="storyId")
    comment_text: str = Field(alias="commentText")
    commenter_name: str = Field(alias="commenterName")


class Comment(_Record):
    """A visitor comment attached to one story."""

    story_id: str = Field(alias="storyId")
    comment_text: str = Field(alias="commentText")
    commenter_name: str = Field(alias="commenterName")
    user_id: Optional[str] = Field(default=None, alias="userId")


# -----------------------------------------------------------------------------
# Feedback
# -----------------------------------------------------------------------------

class FeedbackCreate(BaseModel):
    """Fields for the general feedback form."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: Optional[str] = None
    message: str


class Feedback(_Record):
    """General feedback left for the performer."""

    name: str
    email: Optional[str] = DEFAULT_FEEDBACK_EMAIL
    message: str
    user_id: Optional[str] = Field(default=None, alias="userId")


__all__ = [
    "AuthState",
    "Comment",
    "CommentCreate",
    "DEFAULT_FEEDBACK_EMAIL",
    "DEFAULT_STORY_IMAGE_URL",
    "Feedback",
    "FeedbackCreate",
    "Identity",
    "IdentitySource",
    "PENDING_LABEL",
    "SeedOutcome",
    "SeedState",
    "SortDirection",
    "Story",
    "StoryCreate",
]
