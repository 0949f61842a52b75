#!/usr/bin/env python
"""
recital-sync CLI - inspect and write site content.

Usage:
    recital-sync init-db                      # Create tables (postgres backend)
    recital-sync seed                         # Write sample content if absent
    recital-sync stories                      # List stories, newest first
    recital-sync story <id>                   # Show one story with its comments
    recital-sync watch stories                # Print every live snapshot
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .app import RecitalApp
from .config import COLLECTIONS, COMMENTS, FEEDBACK, STORIES, Settings
from .errors import ConfigError, RecitalSyncError
from .logging_utils import configure_safe_logging, remove_safe_logging
from .models import CommentCreate, FeedbackCreate, SeedOutcome, StoryCreate

logger = logging.getLogger(__name__)

SNAPSHOT_TIMEOUT_SECONDS = 10.0


def _require_postgres(settings: Settings) -> str:
    if settings.backend_name != "postgres":
        raise ConfigError("this command needs the postgres backend")
    from .db.connection import get_connection_string
    return get_connection_string(settings.backend_config)


def _print_stories(stories) -> None:
    if not stories:
        print("No stories yet.")
        return
    print(f"\n{'ID':<34} {'Created':<17} {'Title'}")
    print("-" * 85)
    for story in stories:
        print(f"{story.id:<34} {story.display_created_at():<17} {story.title}")
    print()


def _print_comments(comments) -> None:
    if not comments:
        print("No comments yet.")
        return
    for comment in comments:
        print(f"[{comment.display_created_at()}] {comment.commenter_name}: {comment.comment_text}")


def _print_feedback(entries) -> None:
    if not entries:
        print("No feedback yet.")
        return
    for entry in entries:
        email = f" <{entry.email}>" if entry.email else ""
        print(f"[{entry.display_created_at()}] {entry.name}{email}")
        print(f"    {entry.message}")


PRINTERS = {
    STORIES: _print_stories,
    COMMENTS: _print_comments,
    FEEDBACK: _print_feedback,
}


async def _first_snapshot(subscription):
    async with subscription:
        return await subscription.get(timeout=SNAPSHOT_TIMEOUT_SECONDS)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

async def cmd_init_db(app: RecitalApp, args) -> int:
    from .db.connection import init_db
    dsn = _require_postgres(app.settings)
    await asyncio.to_thread(init_db, dsn)
    print("Schema initialized.")
    return 0


async def cmd_issue_token(app: RecitalApp, args) -> int:
    from .db.connection import issue_token
    dsn = _require_postgres(app.settings)
    await asyncio.to_thread(issue_token, dsn, args.token, args.uid)
    print(f"Token registered for {args.uid}.")
    return 0


async def cmd_seed(app: RecitalApp, args) -> int:
    identity = await app.start(seed=False)
    outcome = await app.seeder.seed_if_absent(identity)
    print(f"Seed: {outcome.value}")
    return 1 if outcome == SeedOutcome.FAILED else 0


async def cmd_stories(app: RecitalApp, args) -> int:
    await app.start(seed=args.seed)
    _print_stories(await _first_snapshot(app.repository.stories.subscribe()))
    return 0


async def cmd_story(app: RecitalApp, args) -> int:
    await app.start(seed=args.seed)
    story = await app.repository.stories.get_by_id(args.id)
    if story is None:
        print("Story not found.")
        return 1
    print(f"\n# {story.title}\n")
    print(f"Image: {story.image_url}")
    print(f"Published: {story.display_created_at()} by {story.author_id or 'N/A'}\n")
    print(story.content)
    print("\n## Comments\n")
    _print_comments(
        await _first_snapshot(app.repository.comments.subscribe_for_story(args.id))
    )
    return 0


async def cmd_comments(app: RecitalApp, args) -> int:
    await app.start(seed=args.seed)
    _print_comments(
        await _first_snapshot(app.repository.comments.subscribe_for_story(args.story_id))
    )
    return 0


async def cmd_feedback(app: RecitalApp, args) -> int:
    await app.start(seed=args.seed)
    _print_feedback(await _first_snapshot(app.repository.feedback.subscribe()))
    return 0


async def cmd_publish(app: RecitalApp, args) -> int:
    await app.start(seed=False)
    story_id = await app.repository.stories.create(
        StoryCreate(title=args.title, content=args.content, image_url=args.image_url)
    )
    print(f"Story added: {story_id}")
    return 0


async def cmd_comment(app: RecitalApp, args) -> int:
    await app.start(seed=False)
    comment_id = await app.repository.comments.create(
        CommentCreate(story_id=args.story_id, comment_text=args.text, commenter_name=args.name)
    )
    print(f"Comment added: {comment_id}")
    return 0


async def cmd_send_feedback(app: RecitalApp, args) -> int:
    await app.start(seed=False)
    feedback_id = await app.repository.feedback.create(
        FeedbackCreate(name=args.name, email=args.email, message=args.message)
    )
    print(f"Thank you for your feedback! ({feedback_id})")
    return 0


async def cmd_watch(app: RecitalApp, args) -> int:
    await app.start(seed=args.seed)
    repository = app.repository
    if args.collection == COMMENTS and args.story:
        subscription = repository.comments.subscribe_for_story(args.story)
    else:
        subscription = getattr(repository, args.collection).subscribe()

    printer = PRINTERS[args.collection]
    received = 0
    async with subscription:
        async for snapshot in subscription:
            received += 1
            print(f"--- snapshot {received} ({len(snapshot)} records)")
            printer(snapshot)
            if args.count and received >= args.count:
                break
    return 0


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

async def _run(args, settings: Settings) -> int:
    app = RecitalApp.from_settings(settings)
    try:
        return await args.func(app, args)
    finally:
        await app.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recital-sync",
        description="recital-sync CLI - inspect and write site content",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  recital-sync init-db                              # Create postgres schema
  recital-sync issue-token SECRET author-1          # Register the author's credential
  recital-sync publish --title "Dress rehearsal" --content "..."
  recital-sync comment sample-story-1 --name Meena --text "Lovely!"
  recital-sync watch comments --story sample-story-1 --count 3

Configuration comes from RECITAL_BACKEND_CONFIG, RECITAL_APP_ID and
RECITAL_AUTH_TOKEN (a .env file is read if present).
        """
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    def reader(name, help_text):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("--seed", action="store_true", help="Seed sample content first")
        return p

    p_init = subparsers.add_parser("init-db", help="Create tables (postgres backend)")
    p_init.set_defaults(func=cmd_init_db)

    p_token = subparsers.add_parser("issue-token", help="Register a bearer credential")
    p_token.add_argument("token", help="Credential value")
    p_token.add_argument("uid", help="User id the credential signs in as")
    p_token.set_defaults(func=cmd_issue_token)

    p_seed = subparsers.add_parser("seed", help="Write sample content if absent")
    p_seed.set_defaults(func=cmd_seed)

    p_stories = reader("stories", "List stories, newest first")
    p_stories.set_defaults(func=cmd_stories)

    p_story = reader("story", "Show one story and its comments")
    p_story.add_argument("id", help="Story ID")
    p_story.set_defaults(func=cmd_story)

    p_comments = reader("comments", "List comments for a story")
    p_comments.add_argument("story_id", help="Story ID")
    p_comments.set_defaults(func=cmd_comments)

    p_feedback = reader("feedback", "List feedback, newest first")
    p_feedback.set_defaults(func=cmd_feedback)

    p_publish = subparsers.add_parser("publish", help="Publish a story")
    p_publish.add_argument("--title", required=True)
    p_publish.add_argument("--content", required=True)
    p_publish.add_argument("--image-url", default=None, help="Defaults to a placeholder image")
    p_publish.set_defaults(func=cmd_publish)

    p_comment = subparsers.add_parser("comment", help="Comment on a story")
    p_comment.add_argument("story_id", help="Story ID")
    p_comment.add_argument("--name", required=True, help="Commenter name")
    p_comment.add_argument("--text", required=True, help="Comment text")
    p_comment.set_defaults(func=cmd_comment)

    p_send = subparsers.add_parser("send-feedback", help="Submit general feedback")
    p_send.add_argument("--name", required=True)
    p_send.add_argument("--message", required=True)
    p_send.add_argument("--email", default=None)
    p_send.set_defaults(func=cmd_send_feedback)

    p_watch = reader("watch", "Print live snapshots of a collection")
    p_watch.add_argument("collection", choices=COLLECTIONS)
    p_watch.add_argument("--story", help="Only comments on this story")
    p_watch.add_argument("-n", "--count", type=int, default=0, help="Stop after N snapshots")
    p_watch.set_defaults(func=cmd_watch)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = Settings.from_env()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_safe_logging(settings.log_level)

    try:
        return asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        return 130
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except (RecitalSyncError, asyncio.TimeoutError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        remove_safe_logging()


if __name__ == "__main__":
    sys.exit(main())
