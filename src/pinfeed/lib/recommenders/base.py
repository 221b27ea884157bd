"""Base abstraction for notification recommenders.

Each recommender has a unique name and is gated by the user opt-in flag
of the same purpose.  ``run`` loads the user, checks the flag, builds the
recommendation and hands it to the notifier.  Recommenders are registered
in a global registry so they can be looked up by name from the API layer.
"""

import logging
import random
from abc import ABC, abstractmethod

from ...errors import NotFound, PreconditionFailed
from ..notifier import Notifier, dispatch
from ..validation import require_ids

logger = logging.getLogger(__name__)

# How many preview images go out with a notification.
PREVIEW_IMAGES = 5


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class NotificationRecommender(ABC):
    """Abstract base class for named, opt-in notification recommenders.

    Subclasses must implement `name`, `flag` and `recommend`.
    """

    # Extra user fields `recommend` needs besides id, flag and delivery data.
    user_fields: list[str] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name identifying this recommender (e.g. ``boards_for_you``)."""
        ...

    @property
    @abstractmethod
    def flag(self) -> str:
        """User field that must be truthy for the recommender to run."""
        ...

    @abstractmethod
    async def recommend(
        self,
        store,
        user: dict,
        rng: random.Random | None = None,
    ) -> tuple[list[dict], list[str]]:
        """Build the recommended items and their preview images.

        Parameters
        ----------
        store:
            A :class:`~pinfeed.lib.store.ContentStore`.
        user:
            The requesting user, projected to ``user_fields``.
        rng:
            Randomness source for shuffling and sampling.

        Returns
        -------
        tuple
            ``(items, images)``
        """
        ...

    def should_notify(self, items: list[dict]) -> bool:
        return bool(items)

    async def run(
        self,
        store,
        notifier: Notifier,
        user_id: str,
        rng: random.Random | None = None,
    ) -> bool:
        require_ids(user_id)
        fields = [self.flag, "fcmToken", *self.user_fields]
        user = await store.get_by_id("users", user_id, fields)
        if user is None:
            raise NotFound("no such user")
        if not user.get(self.flag):
            raise PreconditionFailed(f"user should allow {self.flag} first")

        items, images = await self.recommend(store, user, rng)
        if self.should_notify(items):
            await dispatch(notifier, user, self.name, items, images[:PREVIEW_IMAGES])
        else:
            logger.info("Nothing to send for %s to user %s", self.name, user_id)
        return True


def excluded_pin_ids(user: dict) -> set[str]:
    """Ids of the pins the user created or saved."""
    refs = list(user.get("pins") or []) + list(user.get("savedPins") or [])
    return {str(ref.get("pinId")) for ref in refs if ref.get("pinId") is not None}


def preview_images(items: list[dict]) -> list[str]:
    return [item["imageId"] for item in items if item.get("imageId")][:PREVIEW_IMAGES]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_recommenders: dict[str, NotificationRecommender] = {}


def register_recommender(rec: NotificationRecommender) -> None:
    """Register a recommender instance by its name."""
    _recommenders[rec.name] = rec


def get_recommender(name: str) -> NotificationRecommender | None:
    """Look up a registered recommender by name.  Returns ``None`` if not found."""
    return _recommenders.get(name)


def list_recommenders() -> list[str]:
    """Return the names of all registered recommenders."""
    return list(_recommenders.keys())
