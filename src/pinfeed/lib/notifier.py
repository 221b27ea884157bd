"""Dispatch of recommendation payloads to a user's delivery channel.

Building and sending the actual push message is somebody else's job; the
recommenders only hand over the user, the recommended items and a handful
of preview images.
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Fire-and-forget sink for recommendation payloads."""

    @abstractmethod
    async def send(self, user: dict, kind: str, items: list, images: list[str]) -> None:
        """Deliver *items* of recommendation *kind* to *user*.

        Parameters
        ----------
        user:
            The recipient's user record (at least ``id`` and ``fcmToken``).
        kind:
            Recommendation type, e.g. ``boards_for_you``.
        items:
            The recommended boards or pins, already serialized.
        images:
            Up to five preview image ids.
        """
        ...


class LoggingNotifier(Notifier):
    """Notifier that only logs what would have been sent, keeping no state."""

    async def send(self, user, kind, items, images):
        logger.info(
            "Notification %s for user %s: %d items, %d images",
            kind,
            user.get("id"),
            len(items),
            len(images),
        )


async def dispatch(notifier: Notifier, user: dict, kind: str, items: list, images: list[str]) -> None:
    """Send through *notifier*, logging instead of raising on failure."""
    try:
        await notifier.send(user, kind, items, images)
    except Exception:
        logger.exception("Notifier failed to send %s to user %s", kind, user.get("id"))
