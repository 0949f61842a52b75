"""
recital-sync

Realtime content synchronization for a recital site: identity bootstrap,
live subscriptions over stories, comments and feedback, and one-time
sample-data seeding.
"""

from .app import RecitalApp
from .config import Settings, collection_path
from .models import (
    AuthState,
    Comment,
    CommentCreate,
    Feedback,
    FeedbackCreate,
    Identity,
    Story,
    StoryCreate,
)

__all__ = [
    "AuthState",
    "Comment",
    "CommentCreate",
    "Feedback",
    "FeedbackCreate",
    "Identity",
    "RecitalApp",
    "Settings",
    "Story",
    "StoryCreate",
    "collection_path",
]
