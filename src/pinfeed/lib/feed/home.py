"""Home feed generation.

A run rebuilds ``homeFeed`` from scratch in three passes:

1. **Recent topics** - a 15-pin window from each of the user's
   ``lastTopics`` pools, most recent first.
2. **Ranked topics** - topics from the user's history, followed topics and
   personalized boards, ranked by frequency; a 20-pin window from each.
   Pins the user already saw (history, own boards) are skipped.
3. **Fallback** - while fewer than 400 pins were collected, a 10-pin window
   from every topic in the store.

The feed is written back after every topic so readers see a growing
prefix of the final result.
"""

import asyncio
import logging
import random

from ...errors import NotFound
from ...models import GenerationResult, PinSummary
from ..records import resolve_pin, topic_name, topic_pool
from ..sampling import Accumulator, ResultSink, cancelled, page, rank_topics, sample_window
from ..validation import require_ids

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

RECENT_TOPIC_WINDOW = 15
RANKED_TOPIC_WINDOW = 20
FALLBACK_TOPIC_WINDOW = 10
# Below this many pins the fallback pass samples every topic in the store.
FALLBACK_THRESHOLD = 400

USER_FIELDS = ["history", "followingTopics", "boards", "lastTopics"]
BOARD_FIELDS = ["topic", "personalization", "pins", "sections"]


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------

async def seed_from_recent_topics(
    store,
    user: dict,
    acc: Accumulator,
    sink: ResultSink | None = None,
    rng: random.Random | None = None,
    cancel: asyncio.Event | None = None,
) -> None:
    """Sample each cached recent topic, most recent first.

    Only the sampled slice of the topic's pool is loaded, sized from the
    ``pinsLength`` cached on the user.  Without a *sink* nothing is written.
    """
    last_topics = user.get("lastTopics") or []
    for entry in reversed(last_topics):
        if cancelled(cancel):
            return
        try:
            window = sample_window(int(entry.get("pinsLength") or 0), RECENT_TOPIC_WINDOW, rng)
            topic = await store.find_one(
                "topics",
                {"name": entry.get("topicName")},
                array_slice=("pins", window.start, len(window)),
            )
            if topic is None:
                continue
            for pin_id in topic.get("pins") or []:
                pin = await resolve_pin(store, pin_id)
                if pin is not None:
                    acc.add(pin.id, pin)
            if sink is not None:
                await sink.flush(_dump(acc))
        except Exception:
            logger.exception("Recent topic %r failed for user %s", entry.get("topicName"), user["id"])


async def collect_topic_signal(store, user: dict, acc: Accumulator) -> list[str | None]:
    """Gather topic occurrences and mark the pins the user has already seen."""
    topics: list[str | None] = []

    for entry in reversed(user.get("history") or []):
        try:
            topics.append(entry.get("topic"))
            if entry.get("pinId") is not None:
                acc.mark_seen(str(entry["pinId"]))
        except Exception:
            logger.exception("Bad history entry for user %s", user["id"])

    for topic_id in reversed(user.get("followingTopics") or []):
        try:
            name = await topic_name(store, topic_id)
        except Exception:
            logger.exception("Followed topic %s failed for user %s", topic_id, user["id"])
            continue
        if name:
            topics.append(name)

    for ref in user.get("boards") or []:
        try:
            board_topics, board_seen = await _board_signal(store, ref)
        except Exception:
            logger.exception("Board %r failed for user %s", ref, user["id"])
            continue
        topics.extend(board_topics)
        for pin_id in board_seen:
            acc.mark_seen(pin_id)

    return topics


async def _board_signal(store, ref: dict) -> tuple[list[str | None], list[str]]:
    """Topics and pin ids contributed by one of the user's boards."""
    board = await store.get_by_id("boards", str(ref.get("boardId")), BOARD_FIELDS)
    if board is None or not board.get("personalization"):
        return [], []
    if board.get("topic"):
        return [board["topic"]], []
    board_pins = list(board.get("pins") or [])
    for section in board.get("sections") or []:
        board_pins.extend(section.get("pins") or [])
    topics: list[str | None] = []
    seen: list[str] = []
    for board_pin in board_pins:
        topics.append(board_pin.get("topic"))
        if board_pin.get("pinId") is not None:
            seen.append(str(board_pin["pinId"]))
    return topics, seen


async def take_window(
    store,
    pool: list,
    window_size: int,
    acc: Accumulator,
    rng: random.Random | None = None,
) -> None:
    """Append the unseen pins of one random window of *pool*."""
    for index in sample_window(len(pool), window_size, rng):
        pin_id = str(pool[index])
        if acc.is_seen(pin_id):
            continue
        acc.mark_seen(pin_id)
        pin = await resolve_pin(store, pin_id)
        if pin is not None:
            acc.add(pin.id, pin)


async def fill_from_ranked_topics(
    store,
    ranked: list[tuple[str, int]],
    acc: Accumulator,
    sink: ResultSink,
    rng: random.Random | None = None,
    cancel: asyncio.Event | None = None,
) -> None:
    for name, count in ranked:
        if cancelled(cancel):
            return
        try:
            pool = await topic_pool(store, name)
            if pool is None:
                logger.debug("Ranked topic %r (%d) has no record", name, count)
                continue
            await take_window(store, pool, RANKED_TOPIC_WINDOW, acc, rng)
            await sink.flush(_dump(acc))
        except Exception:
            logger.exception("Ranked topic %r failed", name)


async def fill_from_all_topics(
    store,
    window_size: int,
    acc: Accumulator,
    sink: ResultSink,
    rng: random.Random | None = None,
    cancel: asyncio.Event | None = None,
) -> None:
    for topic in await store.find("topics", fields=["pins"]):
        if cancelled(cancel):
            return
        try:
            await take_window(store, list(topic.get("pins") or []), window_size, acc, rng)
            await sink.flush(_dump(acc))
        except Exception:
            logger.exception("Fallback topic %s failed", topic.get("id"))


def _dump(acc: Accumulator) -> list[dict]:
    return [pin.model_dump(by_alias=True) for pin in acc.items]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

async def regenerate_home_feed(
    store,
    user_id: str,
    rng: random.Random | None = None,
    cancel: asyncio.Event | None = None,
) -> GenerationResult:
    """Rebuild the user's ``homeFeed`` and return how many pins it holds.

    Concurrent runs for the same user race on ``homeFeed``; the last
    writer wins.  A set *cancel* event stops the run at the next topic.
    """
    require_ids(user_id)
    user = await store.get_by_id("users", user_id, USER_FIELDS)
    if user is None:
        raise NotFound("no such user")

    async def write(items):
        await store.update_fields("users", user_id, {"homeFeed": items})

    sink = ResultSink(write, f"homeFeed of user {user_id}")
    acc = Accumulator()
    await sink.flush([])

    await seed_from_recent_topics(store, user, acc, sink, rng, cancel)
    topics = await collect_topic_signal(store, user, acc)
    await fill_from_ranked_topics(store, rank_topics(topics), acc, sink, rng, cancel)
    if len(acc) < FALLBACK_THRESHOLD:
        await fill_from_all_topics(store, FALLBACK_TOPIC_WINDOW, acc, sink, rng, cancel)

    if cancelled(cancel):
        logger.info("Home feed run for user %s cancelled at %d pins", user_id, len(acc))
    logger.info("Generated %d home feed pins for user %s", len(acc), user_id)
    return GenerationResult(total=len(acc))


async def read_home_feed_page(store, user_id: str, limit: int, offset: int) -> list[PinSummary]:
    """Return ``homeFeed[offset:offset + limit]``; the whole page must exist."""
    require_ids(user_id)
    user = await store.get_by_id("users", user_id, ["homeFeed"])
    if user is None:
        raise NotFound("no such user")
    return [PinSummary.model_validate(item) for item in page(user.get("homeFeed") or [], limit, offset)]
