"""Tests for follow / unfollow bookkeeping."""

import pytest

from ..errors import InvalidArgument, NotFound, PreconditionFailed
from .graph import follow_user, unfollow_user
from .store import InMemoryContentStore

ALICE = "a" * 24
BOB = "b" * 24


@pytest.fixture
def store():
    return InMemoryContentStore({
        "users": [
            {"id": ALICE, "following": [], "followers": []},
            {"id": BOB, "following": [], "followers": []},
        ]
    })


@pytest.mark.asyncio
async def test_follow_then_unfollow(store):
    assert await follow_user(store, ALICE, BOB) is True
    assert store.raw("users", ALICE)["following"] == [BOB]
    assert store.raw("users", BOB)["followers"] == [ALICE]

    assert await unfollow_user(store, ALICE, BOB) is True
    assert store.raw("users", ALICE)["following"] == []
    assert store.raw("users", BOB)["followers"] == []


@pytest.mark.asyncio
async def test_follow_twice_is_rejected(store):
    await follow_user(store, ALICE, BOB)
    with pytest.raises(PreconditionFailed):
        await follow_user(store, ALICE, BOB)
    assert store.raw("users", BOB)["followers"] == [ALICE]


@pytest.mark.asyncio
async def test_unfollow_without_following(store):
    with pytest.raises(PreconditionFailed):
        await unfollow_user(store, ALICE, BOB)


@pytest.mark.asyncio
async def test_cannot_follow_yourself(store):
    with pytest.raises(InvalidArgument):
        await follow_user(store, ALICE, ALICE)


@pytest.mark.asyncio
async def test_unknown_user(store):
    with pytest.raises(NotFound):
        await follow_user(store, ALICE, "c" * 24)


@pytest.mark.asyncio
async def test_malformed_id(store):
    with pytest.raises(InvalidArgument):
        await unfollow_user(store, ALICE, "bob")
