""""More like this" lists for pins, boards and board sections.

All three scopes share one run:

1. clear the scope's ``more`` list;
2. derive candidate topics (the pin's topic, or every topic met while
   scanning the board/section pins from a random offset, plus the board's
   own topic);
3. take a 50-pin window from each candidate topic's pool;
4. add every pin in the store whose title or note contains the scope's
   text (the pin's title/note, or the board name);
5. for boards and sections only, top up from a 3-pin window of every
   topic when fewer than 10 pins were found.

Results are written back after each added pin (after each topic in the
fallback pass).  Section results are saved through the owning board's
``sections`` array.
"""

import asyncio
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field

from ...errors import NotFound
from ...models import GenerationResult, PinSummary
from ..records import resolve_pin, topic_pool
from .home import take_window
from ..sampling import Accumulator, ResultSink, cancelled, page, rotated, sample_window
from ..validation import require_ids

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

TOPIC_WINDOW = 50
FALLBACK_WINDOW = 3
# Boards and sections fall back to every topic below this many pins.
FALLBACK_THRESHOLD = 10

TEXT_FIELDS = ["imageId", "title", "note"]


@dataclass
class MoreLikeScope:
    """What one run generates for and how it persists."""

    label: str
    sink: ResultSink
    topics: list[str]
    needles: list[str]
    # Scan the store's pins from the end (pin scope) or the start.
    scan_reversed: bool = False
    fallback_window: int | None = None
    exclude: set[str] = field(default_factory=set)


def text_matches(candidate: dict, needles: list[str]) -> bool:
    """True if the candidate's title or note contains any needle."""
    haystacks = [candidate.get("title"), candidate.get("note")]
    return any(
        needle in haystack
        for needle in needles
        for haystack in haystacks
        if isinstance(haystack, str)
    )


def distinct_topics(pins: list[dict], rng: random.Random | None = None) -> list[str]:
    """Topics of *pins* in first-met order, scanning from a random offset."""
    topics: list[str] = []
    for pin in rotated(pins, rng):
        topic = pin.get("topic")
        if topic and topic not in topics:
            topics.append(topic)
    return topics


async def run_more_like(
    store,
    scope: MoreLikeScope,
    rng: random.Random | None = None,
    cancel: asyncio.Event | None = None,
) -> GenerationResult:
    acc = Accumulator()
    for item_id in scope.exclude:
        acc.mark_seen(item_id)

    def dump():
        return [pin.model_dump(by_alias=True) for pin in acc.items]

    async def add(pin: PinSummary | None) -> None:
        if pin is None or acc.is_seen(pin.id):
            return
        acc.add(pin.id, pin)
        await scope.sink.flush(dump())

    await scope.sink.flush([])

    # Topic windows
    for name in scope.topics:
        if cancelled(cancel):
            break
        try:
            pool = await topic_pool(store, name)
            if pool is None:
                continue
            for index in sample_window(len(pool), TOPIC_WINDOW, rng):
                await add(await resolve_pin(store, pool[index]))
        except Exception:
            logger.exception("Topic %r failed for %s", name, scope.label)

    # Textual similarity
    if scope.needles and not cancelled(cancel):
        candidates = await store.find("pins", fields=TEXT_FIELDS)
        if scope.scan_reversed:
            candidates.reverse()
        for candidate in candidates:
            if text_matches(candidate, scope.needles):
                await add(PinSummary(id=candidate["id"], image_id=candidate.get("imageId")))

    # Fallback
    if scope.fallback_window and len(acc) < FALLBACK_THRESHOLD:
        for topic in await store.find("topics", fields=["pins"]):
            if cancelled(cancel):
                break
            try:
                await take_window(store, list(topic.get("pins") or []), scope.fallback_window, acc, rng)
                await scope.sink.flush(dump())
            except Exception:
                logger.exception("Fallback topic %s failed for %s", topic.get("id"), scope.label)

    logger.info("Generated %d more-like pins for %s", len(acc), scope.label)
    return GenerationResult(total=len(acc))


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------

def _field_writer(store, collection: str, record_id: str) -> Callable:
    async def write(items):
        await store.update_fields(collection, record_id, {"more": items})

    return write


async def generate_pin_more_like(
    store,
    user_id: str,
    pin_id: str,
    rng: random.Random | None = None,
    cancel: asyncio.Event | None = None,
) -> GenerationResult:
    require_ids(user_id, pin_id)
    pin = await store.get_by_id("pins", pin_id, ["topic", "title", "note"])
    if pin is None:
        raise NotFound("no such pin")

    label = f"pin {pin_id}"
    scope = MoreLikeScope(
        label=label,
        sink=ResultSink(_field_writer(store, "pins", pin_id), label),
        topics=[pin["topic"]] if pin.get("topic") else [],
        needles=[text for text in (pin.get("title"), pin.get("note")) if text],
        scan_reversed=True,
        exclude={pin_id},
    )
    return await run_more_like(store, scope, rng, cancel)


async def generate_board_more_like(
    store,
    user_id: str,
    board_id: str,
    rng: random.Random | None = None,
    cancel: asyncio.Event | None = None,
) -> GenerationResult:
    require_ids(user_id, board_id)
    board = await store.get_by_id("boards", board_id, ["topic", "pins", "name"])
    if board is None:
        raise NotFound("no such board")

    topics = distinct_topics(board.get("pins") or [], rng)
    if board.get("topic") and board["topic"] not in topics:
        topics.append(board["topic"])

    label = f"board {board_id}"
    scope = MoreLikeScope(
        label=label,
        sink=ResultSink(_field_writer(store, "boards", board_id), label),
        topics=topics,
        needles=[board["name"]] if board.get("name") else [],
        fallback_window=FALLBACK_WINDOW,
    )
    return await run_more_like(store, scope, rng, cancel)


async def generate_section_more_like(
    store,
    user_id: str,
    board_id: str,
    section_id: str,
    rng: random.Random | None = None,
    cancel: asyncio.Event | None = None,
) -> GenerationResult:
    require_ids(user_id, board_id, section_id)
    board = await store.get_by_id("boards", board_id, ["topic", "name", "sections"])
    if board is None:
        raise NotFound("no such board")
    sections = board.get("sections") or []
    section = next((s for s in sections if str(s.get("id")) == section_id), None)
    if section is None:
        raise NotFound("no such section")

    async def write(items):
        section["more"] = items
        await store.update_fields("boards", board_id, {"sections": sections})

    topics = distinct_topics(section.get("pins") or [], rng)
    if board.get("topic") and board["topic"] not in topics:
        topics.append(board["topic"])

    label = f"section {section_id} of board {board_id}"
    scope = MoreLikeScope(
        label=label,
        sink=ResultSink(write, label),
        topics=topics,
        needles=[board["name"]] if board.get("name") else [],
        fallback_window=FALLBACK_WINDOW,
    )
    return await run_more_like(store, scope, rng, cancel)


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------

def _pins(items: list) -> list[PinSummary]:
    return [PinSummary.model_validate(item) for item in items]


async def read_pin_more_like(store, pin_id: str, limit: int, offset: int) -> list[PinSummary]:
    require_ids(pin_id)
    pin = await store.get_by_id("pins", pin_id, ["more"])
    if pin is None:
        raise NotFound("no such pin")
    return _pins(page(pin.get("more") or [], limit, offset))


async def read_board_more_like(store, board_id: str, limit: int, offset: int) -> list[PinSummary]:
    require_ids(board_id)
    board = await store.get_by_id("boards", board_id, ["more"])
    if board is None:
        raise NotFound("no such board")
    return _pins(page(board.get("more") or [], limit, offset))


async def read_section_more_like(
    store,
    board_id: str,
    section_id: str,
    limit: int,
    offset: int,
) -> list[PinSummary]:
    require_ids(board_id, section_id)
    board = await store.get_by_id("boards", board_id, ["sections"])
    if board is None:
        raise NotFound("no such board")
    for section in board.get("sections") or []:
        if str(section.get("id")) == section_id:
            return _pins(page(section.get("more") or [], limit, offset))
    raise NotFound("no such section")
