"""
Core services: identity bootstrap, live subscriptions, content
repository and sample-data seeding.
"""

from .content_service import (
    CommentService,
    ContentRepository,
    FeedbackService,
    StoryService,
)
from .identity_service import IdentityBootstrap
from .seed_service import InvalidTransitionError, SeedProvisioner
from .subscription_registry import (
    Subscription,
    SubscriptionClosed,
    SubscriptionRegistry,
)

__all__ = [
    "CommentService",
    "ContentRepository",
    "FeedbackService",
    "IdentityBootstrap",
    "InvalidTransitionError",
    "SeedProvisioner",
    "StoryService",
    "Subscription",
    "SubscriptionClosed",
    "SubscriptionRegistry",
]
