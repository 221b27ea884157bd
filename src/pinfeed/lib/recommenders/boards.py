"""Boards-for-you recommender.

Collects boards similar to the user's own boards, boards about the topics
the user follows and every board of the accounts the user follows.  The
user's own boards and boards of the administrative account are dropped,
the rest shuffled, and each board gets up to three cover images from its
first pins.
"""

import logging
import os
import random

from ...models import BoardSummary
from ..records import topic_name
from .base import NotificationRecommender

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

SIMILAR_PER_BOARD = 10
SIMILAR_PER_TOPIC = 6
COVER_IMAGES = 3

BOARD_FIELDS = ["topic", "name", "description", "pins", "creator"]


def _contains(text, fragment) -> bool:
    return bool(text) and bool(fragment) and fragment in text


def board_matches_board(candidate: dict, own: dict) -> bool:
    """Same topic, or name/description contained one way or the other."""
    if own.get("topic") and candidate.get("topic") == own["topic"]:
        return True
    for field in ("name", "description"):
        a, b = candidate.get(field), own.get(field)
        if _contains(a, b) or _contains(b, a):
            return True
    return False


def board_matches_topic(candidate: dict, topic: str) -> bool:
    name = candidate.get("name")
    return (
        candidate.get("topic") == topic
        or _contains(name, topic)
        or _contains(topic, name)
        or _contains(candidate.get("description"), topic)
    )


class BoardsForYouRecommender(NotificationRecommender):
    """Recommends boards and notifies the user with their cover images."""

    user_fields = ["boards", "following", "followingTopics"]

    @property
    def name(self) -> str:
        return "boards_for_you"

    @property
    def flag(self) -> str:
        return "boardsForYou"

    async def recommend(self, store, user, rng=None):
        all_boards = await store.find("boards", fields=BOARD_FIELDS)
        # Insertion-ordered, deduplicated by board id.
        picked: dict[str, dict] = {}

        def pick_similar(matches, limit: int, skip_id: str | None = None) -> None:
            count = 0
            for board in reversed(all_boards):
                if count >= limit:
                    break
                if board["id"] == skip_id or board["id"] in picked:
                    continue
                if matches(board):
                    picked[board["id"]] = board
                    count += 1

        owned = [str(ref.get("boardId")) for ref in user.get("boards") or []]
        owned_ids = set(owned)
        for board_id in owned:
            own = await store.get_by_id("boards", board_id, ["name", "topic", "description"])
            if own is None:
                continue
            pick_similar(lambda b: board_matches_board(b, own), SIMILAR_PER_BOARD, own["id"])

        for topic_id in user.get("followingTopics") or []:
            name = await topic_name(store, topic_id)
            if name:
                pick_similar(lambda b: board_matches_topic(b, name), SIMILAR_PER_TOPIC)

        for followed_id in user.get("following") or []:
            followed = await store.get_by_id("users", str(followed_id), ["boards"])
            if followed is None:
                continue
            for ref in followed.get("boards") or []:
                board_id = str(ref.get("boardId"))
                if board_id in picked:
                    continue
                board = await store.get_by_id("boards", board_id, BOARD_FIELDS)
                if board is not None:
                    picked[board_id] = board

        boards = [b for b in picked.values() if b["id"] not in owned_ids]
        (rng or random).shuffle(boards)
        boards = await self._without_admin_boards(store, boards)

        summaries = [await self._summarize(store, board) for board in boards]
        images = [s.cover_images[0] for s in summaries[:5] if s.cover_images]
        logger.info("Recommending %d boards to user %s", len(summaries), user["id"])
        return [s.model_dump(by_alias=True) for s in summaries], images

    async def _without_admin_boards(self, store, boards: list[dict]) -> list[dict]:
        admin_email = os.environ.get("ADMIN_EMAIL")
        if not admin_email:
            return boards
        emails: dict[str, str | None] = {}
        kept = []
        for board in boards:
            creator_id = str((board.get("creator") or {}).get("id"))
            if creator_id not in emails:
                creator = await store.get_by_id("users", creator_id, ["email"])
                emails[creator_id] = creator.get("email") if creator else None
            if emails[creator_id] != admin_email:
                kept.append(board)
        return kept

    async def _summarize(self, store, board: dict) -> BoardSummary:
        covers = []
        for ref in (board.get("pins") or [])[:COVER_IMAGES]:
            pin = await store.get_by_id("pins", str(ref.get("pinId")), ["imageId"])
            if pin is not None and pin.get("imageId"):
                covers.append(pin["imageId"])
        return BoardSummary(
            id=board["id"],
            name=board.get("name"),
            topic=board.get("topic"),
            description=board.get("description"),
            cover_images=covers,
        )
