"""
Seed Service

Writes sample stories, feedback and comments the first time a deployment
runs. A fixed sentinel story id marks that seeding already happened.

Transitions:
    not_checked -> probing -> present
                           -> inserting -> done
                                        -> failed
"""

import asyncio
import logging
from typing import Optional

from ..errors import RecitalSyncError
from ..models import Identity, SeedOutcome, SeedState
from .content_service import ContentRepository
from .seed_data import SAMPLE_COMMENTS, SAMPLE_FEEDBACK, SAMPLE_STORIES, SENTINEL_STORY_ID

logger = logging.getLogger(__name__)

VALID_SEED_TRANSITIONS = {
    SeedState.NOT_CHECKED: {SeedState.PROBING},
    SeedState.PROBING: {SeedState.PRESENT, SeedState.INSERTING, SeedState.FAILED},
    SeedState.INSERTING: {SeedState.DONE, SeedState.FAILED},
}


class InvalidTransitionError(Exception):
    """Raised when the seed state machine is driven out of order."""

    pass


class SeedProvisioner:
    """
    Seeds sample content at most once per provisioner.

    The first call to seed_if_absent() starts the run; every later call
    awaits that same run and returns its outcome, however often the
    trigger fires. Feedback has no sentinel, so two provisioners racing
    on an empty store can both write the sample feedback.
    """

    def __init__(self, repository: ContentRepository):
        self.repository = repository
        self.state = SeedState.NOT_CHECKED
        self._task: Optional[asyncio.Task] = None

    @property
    def triggered(self) -> bool:
        return self._task is not None

    async def seed_if_absent(self, identity: Identity) -> SeedOutcome:
        """
        Write sample content unless the sentinel story exists.

        Args:
            identity: Author of the sample stories

        Raises:
            NotReadyError: Identity bootstrap has not completed (the run is
                not consumed; call again once ready)
        """
        self.repository.stories.auth.require_ready()
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run(identity))
        else:
            logger.debug("Seeding already triggered, awaiting first run")
        # A cancelled caller must not cancel the run other triggers share
        return await asyncio.shield(self._task)

    async def _run(self, identity: Identity) -> SeedOutcome:
        stories = self.repository.stories
        self._transition(SeedState.PROBING)

        try:
            present = await stories.exists(SENTINEL_STORY_ID)
        except RecitalSyncError as e:
            logger.error(f"Could not probe for sample data: {e}")
            self._transition(SeedState.FAILED)
            return SeedOutcome.FAILED

        if present:
            logger.info("Sample data already exists. Skipping insertion.")
            self._transition(SeedState.PRESENT)
            return SeedOutcome.PRESENT

        self._transition(SeedState.INSERTING)
        logger.info("Adding sample data...")
        try:
            for story_id, story in SAMPLE_STORIES:
                await stories.put(story_id, story, author_id=identity.id)
            for user_id, feedback in SAMPLE_FEEDBACK:
                await self.repository.feedback.create(feedback, user_id=user_id)
            for user_id, comment in SAMPLE_COMMENTS:
                await self.repository.comments.create(comment, user_id=user_id)
        except RecitalSyncError as e:
            # Partially written samples are left in place
            logger.error(f"Error adding sample data: {e}")
            self._transition(SeedState.FAILED)
            return SeedOutcome.FAILED

        self._transition(SeedState.DONE)
        logger.info("Sample data added successfully")
        return SeedOutcome.INSERTED

    def _transition(self, new_state: SeedState) -> None:
        allowed = VALID_SEED_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot move seed state from {self.state.value} to {new_state.value}"
            )
        self.state = new_state
