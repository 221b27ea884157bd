"""Follow graph bookkeeping between two accounts."""

import logging

from ..errors import InvalidArgument, NotFound, PreconditionFailed
from .validation import require_ids

logger = logging.getLogger(__name__)


async def _load_pair(store, follower_id: str, following_id: str) -> tuple[dict, dict]:
    require_ids(follower_id, following_id)
    follower = await store.get_by_id("users", follower_id, ["following"])
    followed = await store.get_by_id("users", following_id, ["followers"])
    if follower is None or followed is None:
        raise NotFound("one of users not correct")
    return follower, followed


async def follow_user(store, follower_id: str, following_id: str) -> bool:
    """Make *follower_id* follow *following_id*."""
    if follower_id == following_id:
        raise InvalidArgument("You can not follow yourself")
    follower, followed = await _load_pair(store, follower_id, following_id)

    following = [str(f) for f in follower.get("following") or []]
    if following_id in following:
        raise PreconditionFailed("you followed this user before")
    followers = [str(f) for f in followed.get("followers") or []]

    await store.update_fields("users", follower_id, {"following": following + [following_id]})
    await store.update_fields("users", following_id, {"followers": followers + [follower_id]})
    logger.info("User %s now follows %s", follower_id, following_id)
    return True


async def unfollow_user(store, follower_id: str, following_id: str) -> bool:
    """Undo :func:`follow_user`."""
    follower, followed = await _load_pair(store, follower_id, following_id)

    following = [str(f) for f in follower.get("following") or []]
    if following_id not in following:
        raise PreconditionFailed("you did not follow this user before")
    following.remove(following_id)
    followers = [str(f) for f in followed.get("followers") or []]
    if follower_id in followers:
        followers.remove(follower_id)

    await store.update_fields("users", follower_id, {"following": following})
    await store.update_fields("users", following_id, {"followers": followers})
    logger.info("User %s unfollowed %s", follower_id, following_id)
    return True
