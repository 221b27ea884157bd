"""Pin notification recommenders.

* ``popular_pins`` - the most reacted pins.
* ``pins_for_you`` - windows over the topics the user follows or pinned.
* ``pins_inspired`` - windows over the user's recent topics.

All three leave out pins the user created or saved.
"""

import logging
import random

from ..feed.home import seed_from_recent_topics, take_window
from ..records import topic_name, topic_pool
from ..sampling import Accumulator
from .base import NotificationRecommender, excluded_pin_ids, preview_images

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

POPULAR_LIMIT = 100
TOPIC_WINDOW = 10
FALLBACK_WINDOW = 2
# pins_for_you samples every topic below this many pins.
FALLBACK_THRESHOLD = 10
# pins_inspired only notifies above this many pins.
INSPIRED_MINIMUM = 5


def _reacts(pin: dict) -> int:
    reacts = pin.get("reacts")
    return reacts if isinstance(reacts, int) else 0


def _without(items: list[dict], excluded: set[str]) -> list[dict]:
    return [item for item in items if item["id"] not in excluded]


class PopularPinsRecommender(NotificationRecommender):
    user_fields = ["pins", "savedPins"]

    @property
    def name(self) -> str:
        return "popular_pins"

    @property
    def flag(self) -> str:
        return "popularPins"

    async def recommend(self, store, user, rng=None):
        pins = await store.find("pins", fields=["imageId", "reacts"])
        pins.sort(key=_reacts, reverse=True)
        items = [
            {"id": pin["id"], "imageId": pin.get("imageId")}
            for pin in pins[:POPULAR_LIMIT]
        ]
        items = _without(items, excluded_pin_ids(user))
        return items, preview_images(items)


class PinsForYouRecommender(NotificationRecommender):
    user_fields = ["pins", "savedPins", "followingTopics"]

    @property
    def name(self) -> str:
        return "pins_for_you"

    @property
    def flag(self) -> str:
        return "pinsForYou"

    async def _topics(self, store, user: dict) -> list[str]:
        topics: list[str] = []
        for topic_id in reversed(user.get("followingTopics") or []):
            name = await topic_name(store, topic_id)
            if name and name not in topics:
                topics.append(name)
        for field in ("pins", "savedPins"):
            for ref in reversed(user.get(field) or []):
                pin = await store.get_by_id("pins", str(ref.get("pinId")), ["topic"])
                if pin and pin.get("topic") and pin["topic"] not in topics:
                    topics.append(pin["topic"])
        return topics

    async def recommend(self, store, user, rng=None):
        acc = Accumulator()
        for name in await self._topics(store, user):
            pool = await topic_pool(store, name)
            if pool:
                await take_window(store, pool, TOPIC_WINDOW, acc, rng)
        if len(acc) < FALLBACK_THRESHOLD:
            for topic in await store.find("topics", fields=["pins"]):
                await take_window(store, list(topic.get("pins") or []), FALLBACK_WINDOW, acc, rng)

        items = _without([pin.model_dump(by_alias=True) for pin in acc.items], excluded_pin_ids(user))
        (rng or random).shuffle(items)
        return items, preview_images(items)


class PinsInspiredRecommender(NotificationRecommender):
    user_fields = ["pins", "savedPins", "lastTopics"]

    @property
    def name(self) -> str:
        return "pins_inspired"

    @property
    def flag(self) -> str:
        return "pinsInspired"

    def should_notify(self, items):
        return len(items) > INSPIRED_MINIMUM

    async def recommend(self, store, user, rng=None):
        acc = Accumulator()
        await seed_from_recent_topics(store, user, acc, rng=rng)
        items = _without([pin.model_dump(by_alias=True) for pin in acc.items], excluded_pin_ids(user))
        return items, preview_images(items)
