"""Lookups of related records shared by the generators and recommenders.

Missing related records are tolerated everywhere: helpers return ``None``
(or skip the entry) rather than failing the whole run.
"""

import logging

from ..models import PinSummary, UserSummary

logger = logging.getLogger(__name__)

PIN_SUMMARY_FIELDS = ["imageId"]
USER_SUMMARY_FIELDS = [
    "firstName",
    "lastName",
    "profileImage",
    "google",
    "googleImage",
    "followers",
]


async def resolve_pin(store, pin_id) -> PinSummary | None:
    """Fetch the summary of one pin, or ``None`` if it no longer exists."""
    if pin_id is None:
        return None
    pin = await store.get_by_id("pins", str(pin_id), PIN_SUMMARY_FIELDS)
    if pin is None:
        return None
    return PinSummary(id=pin["id"], image_id=pin.get("imageId"))


def user_summary(record: dict) -> UserSummary:
    return UserSummary(
        id=record["id"],
        first_name=record.get("firstName"),
        last_name=record.get("lastName"),
        profile_image=record.get("profileImage"),
        google=record.get("google"),
        google_image=record.get("googleImage"),
        followers=len(record.get("followers") or []),
    )


async def resolve_user(store, user_id) -> UserSummary | None:
    if user_id is None:
        return None
    record = await store.get_by_id("users", str(user_id), USER_SUMMARY_FIELDS)
    if record is None:
        return None
    return user_summary(record)


async def topic_name(store, topic_id) -> str | None:
    """Resolve a followed-topic id to its name."""
    if topic_id is None:
        return None
    topic = await store.get_by_id("topics", str(topic_id), ["name"])
    if topic is None:
        logger.debug("Followed topic %s no longer exists", topic_id)
        return None
    return topic.get("name")


async def topic_pool(store, name: str, field: str = "pins") -> list | None:
    """Return the named topic's pool (``pins`` or ``recommendedUsers``)."""
    topic = await store.find_one("topics", {"name": name}, [field])
    if topic is None:
        return None
    return list(topic.get(field) or [])
