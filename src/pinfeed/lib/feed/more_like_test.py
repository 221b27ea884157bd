"""Tests for the "more like this" generators and readers."""

import asyncio
import random

import pytest

from ...errors import InvalidArgument, NotFound, OutOfRange
from ..sampling import ResultSink
from ..store import InMemoryContentStore
from .more_like import (
    MoreLikeScope,
    distinct_topics,
    generate_board_more_like,
    generate_pin_more_like,
    generate_section_more_like,
    read_board_more_like,
    read_pin_more_like,
    read_section_more_like,
    run_more_like,
    text_matches,
)


def oid(n: int) -> str:
    return f"{n:024x}"


USER = oid(1)
SOURCE_PIN = oid(0x51)
BOARD = oid(0xB1)
SECTION = oid(0xC1)
OTHER_SECTION = oid(0xC2)


@pytest.fixture
def store():
    store = InMemoryContentStore()
    for name, size in (("art", 60), ("food", 8), ("cars", 4)):
        ids = [f"{name}-{i}" for i in range(size)]
        store.insert("topics", {"id": f"topic-{name}", "name": name, "pins": ids})
        for pid in ids:
            store.insert("pins", {"id": pid, "topic": name, "imageId": f"img-{pid}", "title": "", "note": ""})
    store.insert("pins", {
        "id": SOURCE_PIN,
        "topic": "food",
        "title": "lemon tart",
        "note": "zesty",
        "imageId": "img-source",
    })
    store.insert("pins", {"id": "text-1", "title": "best lemon tart ever", "note": None, "imageId": "t1"})
    store.insert("pins", {"id": "text-2", "title": "x", "note": "so zesty", "imageId": "t2"})
    store.insert("pins", {"id": "text-3", "title": "my Kitchen ideas", "note": "", "imageId": "t3"})
    store.insert("boards", {
        "id": BOARD,
        "name": "Kitchen",
        "topic": "",
        "pins": [{"pinId": "cars-0", "topic": "cars"}, {"pinId": "cars-1", "topic": "cars"}],
        "sections": [
            {"id": OTHER_SECTION, "pins": [], "more": [{"id": "keep", "imageId": None}]},
            {"id": SECTION, "pins": [{"pinId": "food-1", "topic": "food"}], "more": []},
        ],
    })
    return store


def ids_of(items) -> list[str]:
    return [item["id"] for item in items]


class TestHelpers:
    def test_text_matches_title_or_note(self):
        assert text_matches({"title": "a lemon tart", "note": None}, ["lemon"])
        assert text_matches({"title": None, "note": "zesty!"}, ["zesty"])
        assert not text_matches({"title": None, "note": None}, ["zesty"])

    def test_distinct_topics_covers_all_topics_once(self):
        pins = [{"topic": t} for t in ["a", "b", "a", "c", None, "b"]]
        topics = distinct_topics(pins, random.Random(3))
        assert sorted(topics) == ["a", "b", "c"]


class TestPinMoreLike:
    @pytest.mark.asyncio
    async def test_topic_window_and_text_matches(self, store):
        result = await generate_pin_more_like(store, USER, SOURCE_PIN, rng=random.Random(1))

        ids = ids_of(store.raw("pins", SOURCE_PIN)["more"])
        assert result.total == len(ids) == len(set(ids))
        assert {f"food-{i}" for i in range(8)} <= set(ids)
        assert {"text-1", "text-2"} <= set(ids)
        assert "text-3" not in ids
        assert SOURCE_PIN not in ids

    @pytest.mark.asyncio
    async def test_pin_has_no_fallback_pass(self, store):
        result = await generate_pin_more_like(store, USER, SOURCE_PIN, rng=random.Random(1))
        assert not any(i.startswith(("art-", "cars-")) for i in ids_of(store.raw("pins", SOURCE_PIN)["more"]))
        assert result.total == 10

    @pytest.mark.asyncio
    async def test_second_run_clears_previous_result(self, store):
        store.raw("pins", SOURCE_PIN)["more"] = [{"id": "leftover", "imageId": None}]
        await generate_pin_more_like(store, USER, SOURCE_PIN, rng=random.Random(2))
        assert "leftover" not in ids_of(store.raw("pins", SOURCE_PIN)["more"])

    @pytest.mark.asyncio
    async def test_missing_pin(self, store):
        with pytest.raises(NotFound):
            await generate_pin_more_like(store, USER, oid(0xDEAD))

    @pytest.mark.asyncio
    async def test_invalid_ids(self, store):
        with pytest.raises(InvalidArgument):
            await generate_pin_more_like(store, "bad", SOURCE_PIN)


class TestBoardMoreLike:
    @pytest.mark.asyncio
    async def test_board_topics_text_and_fallback(self, store):
        result = await generate_board_more_like(store, USER, BOARD, rng=random.Random(4))

        ids = ids_of(store.raw("boards", BOARD)["more"])
        assert result.total == len(ids) == len(set(ids))
        # Board pins are all "cars": the whole 4-pin pool comes first.
        assert set(ids[:4]) == {f"cars-{i}" for i in range(4)}
        assert ids[4] == "text-3"
        # Fewer than 10 so far: 3-pin windows from every topic follow.
        assert any(i.startswith("art-") for i in ids)
        assert any(i.startswith("food-") for i in ids)

    @pytest.mark.asyncio
    async def test_explicit_board_topic_is_a_candidate(self, store):
        store.raw("boards", BOARD)["topic"] = "art"
        store.raw("boards", BOARD)["name"] = "nothing matches this"

        await generate_board_more_like(store, USER, BOARD, rng=random.Random(5))

        ids = ids_of(store.raw("boards", BOARD)["more"])
        assert sum(1 for i in ids if i.startswith("art-")) == 50

    @pytest.mark.asyncio
    async def test_missing_board(self, store):
        with pytest.raises(NotFound):
            await generate_board_more_like(store, USER, oid(0xDEAD))


class TestSectionMoreLike:
    @pytest.mark.asyncio
    async def test_section_result_saved_on_board(self, store):
        result = await generate_section_more_like(store, USER, BOARD, SECTION, rng=random.Random(6))

        sections = store.raw("boards", BOARD)["sections"]
        ids = ids_of(sections[1]["more"])
        assert result.total == len(ids) == len(set(ids))
        assert {f"food-{i}" for i in range(8)} <= set(ids)
        assert "text-3" in ids
        assert ids_of(sections[0]["more"]) == ["keep"]

    @pytest.mark.asyncio
    async def test_first_section_can_be_generated(self, store):
        await generate_section_more_like(store, USER, BOARD, OTHER_SECTION, rng=random.Random(6))
        assert "keep" not in ids_of(store.raw("boards", BOARD)["sections"][0]["more"])

    @pytest.mark.asyncio
    async def test_missing_section(self, store):
        with pytest.raises(NotFound):
            await generate_section_more_like(store, USER, BOARD, oid(0xDEAD))


class FailingWriteStore(InMemoryContentStore):
    """Shares the fixture's records but rejects ``more`` writes after a few."""

    def __init__(self, base: InMemoryContentStore, fail_after: int):
        super().__init__()
        self.collections = base.collections
        self.fail_after = fail_after
        self.more_writes = 0

    async def update_fields(self, collection, record_id, partial):
        if "more" in partial:
            if self.more_writes >= self.fail_after:
                raise RuntimeError("write rejected")
            self.more_writes += 1
        await super().update_fields(collection, record_id, partial)


class TestRunMoreLike:
    @pytest.mark.asyncio
    async def test_write_failure_does_not_abort_run(self, store):
        failing = FailingWriteStore(store, fail_after=3)

        async def write(items):
            await failing.update_fields("pins", SOURCE_PIN, {"more": items})

        sink = ResultSink(write, "pin under test")
        scope = MoreLikeScope(label="pin under test", sink=sink, topics=["food"], needles=[])

        result = await run_more_like(failing, scope, random.Random(0))

        # The clear plus two items were stored; the other six writes failed.
        assert result.total == 8
        assert len(store.raw("pins", SOURCE_PIN)["more"]) == 2
        assert sink.failures == 6

    @pytest.mark.asyncio
    async def test_cancelled_run_stops_early(self, store):
        store.raw("boards", BOARD)["more"] = [{"id": "stale", "imageId": None}]
        cancel = asyncio.Event()
        cancel.set()

        result = await generate_board_more_like(store, USER, BOARD, rng=random.Random(0), cancel=cancel)

        assert result.total == 0
        assert store.raw("boards", BOARD)["more"] == []


class TestReaders:
    @pytest.mark.asyncio
    async def test_read_pin_more_like(self, store):
        store.raw("pins", SOURCE_PIN)["more"] = [{"id": "a", "imageId": "1"}, {"id": "b", "imageId": "2"}]
        pins = await read_pin_more_like(store, SOURCE_PIN, limit=1, offset=1)
        assert [p.id for p in pins] == ["b"]
        with pytest.raises(OutOfRange):
            await read_pin_more_like(store, SOURCE_PIN, limit=2, offset=1)

    @pytest.mark.asyncio
    async def test_read_board_more_like_empty(self, store):
        with pytest.raises(OutOfRange):
            await read_board_more_like(store, BOARD, limit=1, offset=0)

    @pytest.mark.asyncio
    async def test_read_section_more_like(self, store):
        pins = await read_section_more_like(store, BOARD, OTHER_SECTION, limit=1, offset=0)
        assert [p.id for p in pins] == ["keep"]
        with pytest.raises(NotFound):
            await read_section_more_like(store, BOARD, oid(0xDEAD), limit=1, offset=0)
