"""Tests for the recommendations router."""

import os
import random

import pytest
from fastapi.testclient import TestClient

from ..lib.notifier import Notifier
from ..lib.store import InMemoryContentStore
from ..main import app

ME = "a" * 24
OTHER = "b" * 24
POPULAR = "c" * 24


class RecordingNotifier(Notifier):
    """Keeps every payload instead of delivering it."""

    def __init__(self):
        self.sent: list[dict] = []

    async def send(self, user, kind, items, images):
        self.sent.append({"kind": kind, "items": items})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def memory_app():
    """Install an in-memory store, notifier and API key, then clean up."""
    store = InMemoryContentStore({
        "users": [
            {"id": ME, "following": [], "followers": [], "followingTopics": [], "boardsForYou": False},
            {"id": OTHER, "firstName": "Other", "following": [], "followers": [ME]},
            {"id": POPULAR, "firstName": "Pop", "following": [], "followers": [ME, OTHER]},
        ],
        "topics": [{"id": "t-art", "name": "art", "recommendedUsers": [OTHER, POPULAR]}],
    })
    notifier = RecordingNotifier()

    prev = os.environ.get("API_KEY")
    os.environ["API_KEY"] = "testkey"

    app.state.store = store
    app.state.notifier = notifier
    app.state.rng = random.Random(0)
    yield store, notifier
    for name in ("store", "notifier", "rng"):
        try:
            delattr(app.state, name)
        except Exception:
            pass
    if prev is None:
        del os.environ["API_KEY"]
    else:
        os.environ["API_KEY"] = prev


HEADERS = {"X-API-Key": "testkey"}


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_topic_recommendations_sorted_by_followers():
    client = TestClient(app, headers=HEADERS)
    resp = client.get("/topics/art/follow-recommendations", params={"user_id": ME})
    assert resp.status_code == 200
    recs = resp.json()["recommendations"]
    assert [r["user"]["id"] for r in recs] == [POPULAR, OTHER]
    assert recs[0]["user"]["followers"] == 2
    assert recs[0]["recommendType"] == "based on topic"


def test_unknown_topic_is_404():
    client = TestClient(app, headers=HEADERS)
    resp = client.get("/topics/nope/follow-recommendations", params={"user_id": ME})
    assert resp.status_code == 404


def test_trending():
    client = TestClient(app, headers=HEADERS)
    resp = client.get(f"/users/{ME}/follow-recommendations/trending")
    assert resp.status_code == 200
    ids = [r["user"]["id"] for r in resp.json()["recommendations"]]
    assert ids == [POPULAR, OTHER]


def test_composite_falls_back_to_popular_accounts():
    client = TestClient(app, headers=HEADERS)
    resp = client.get(f"/users/{ME}/follow-recommendations")
    assert resp.status_code == 200
    recs = resp.json()["recommendations"]
    assert [r["recommendType"] for r in recs] == ["popular on phantom"] * 2


def test_follow_and_unfollow(memory_app):
    store, _ = memory_app
    client = TestClient(app, headers=HEADERS)

    resp = client.post(f"/users/{ME}/following/{OTHER}")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert store.raw("users", ME)["following"] == [OTHER]

    assert client.post(f"/users/{ME}/following/{OTHER}").status_code == 412
    assert client.delete(f"/users/{ME}/following/{OTHER}").status_code == 200
    assert client.delete(f"/users/{ME}/following/{OTHER}").status_code == 412


def test_follow_yourself_is_400():
    client = TestClient(app, headers=HEADERS)
    assert client.post(f"/users/{ME}/following/{ME}").status_code == 400


def test_list_recommenders():
    client = TestClient(app, headers=HEADERS)
    resp = client.get("/recommenders")
    assert resp.status_code == 200
    assert "boards_for_you" in resp.json()["recommenders"]


def test_run_recommender_requires_opt_in():
    client = TestClient(app, headers=HEADERS)
    resp = client.post(f"/users/{ME}/recommenders/boards_for_you")
    assert resp.status_code == 412


def test_run_recommender(memory_app):
    store, notifier = memory_app
    store.raw("users", ME)["popularPins"] = True
    store.insert("pins", {"id": "p1", "imageId": "img1", "reacts": 3})
    client = TestClient(app, headers=HEADERS)

    resp = client.post(f"/users/{ME}/recommenders/popular_pins")

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert notifier.sent[0]["kind"] == "popular_pins"


def test_unknown_recommender_is_404():
    client = TestClient(app, headers=HEADERS)
    resp = client.post(f"/users/{ME}/recommenders/nope")
    assert resp.status_code == 404
