"""Account-to-follow recommendations.

Three strategies, each tagging its suggestions with where they came from:

* :func:`topic_recommendation` - a topic's curated ``recommendedUsers``,
  most-followed first.
* :func:`trending_recommendation` - the most-followed accounts overall.
* :func:`follow_all_recommendation` - the composite: windows over the
  curated users of the topics behind the user's recent activity, interests
  and the people they follow, then popular accounts.
"""

import logging
import random

from ..errors import NotFound
from ..models import FollowRecommendation
from .records import USER_SUMMARY_FIELDS, resolve_user, topic_name, topic_pool, user_summary
from .sampling import sample_window
from .validation import require_ids

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

RECENT_ACTIVITY = "based on your recent activity"
INTEREST = "based on your interest"
PEOPLE_YOU_FOLLOW = "based on people you follow"
POPULAR_ON_PHANTOM = "popular on phantom"
POPULAR_ACCOUNTS = "popular phantom accounts"
TOPIC_TAG = "based on topic"

TRENDING_LIMIT = 70
COMPOSITE_POPULAR_LIMIT = 20
TOPICS_PER_SOURCE = 3

# Per-topic window: the smaller one applies when more topics were gathered.
MANY_TOPICS = 5
WINDOW_MANY_TOPICS = 5
WINDOW_FEW_TOPICS = 10


def composite_window_size(topic_count: int) -> int:
    """Window size per topic; more topics means a smaller pull from each."""
    return WINDOW_MANY_TOPICS if topic_count > MANY_TOPICS else WINDOW_FEW_TOPICS


async def _load_user(store, user_id: str, fields: list[str]) -> dict:
    require_ids(user_id)
    user = await store.get_by_id("users", user_id, fields)
    if user is None:
        raise NotFound("no such user")
    return user


async def top_users(store, limit: int) -> list[dict]:
    """Users sorted by follower count, most followed first."""
    users = await store.find("users", fields=USER_SUMMARY_FIELDS)
    users.sort(key=lambda u: len(u.get("followers") or []), reverse=True)
    return users[:limit]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

async def topic_recommendation(store, topic_name: str, user_id: str) -> list[FollowRecommendation]:
    """Curated accounts for *topic_name* the user does not follow yet."""
    user = await _load_user(store, user_id, ["following"])
    candidates = await topic_pool(store, topic_name, "recommendedUsers")
    if candidates is None:
        raise NotFound("no such topic")

    exclude = {str(f) for f in user.get("following") or []}
    exclude.add(user_id)
    suggestions = []
    for candidate_id in candidates:
        if str(candidate_id) in exclude:
            continue
        summary = await resolve_user(store, candidate_id)
        if summary is not None:
            suggestions.append(FollowRecommendation(user=summary, recommend_type=TOPIC_TAG))
    suggestions.sort(key=lambda s: s.user.followers, reverse=True)
    return suggestions


async def trending_recommendation(store, user_id: str) -> list[FollowRecommendation]:
    """The most followed accounts the user does not follow yet."""
    user = await _load_user(store, user_id, ["following"])
    exclude = {str(f) for f in user.get("following") or []}
    exclude.add(user_id)
    return [
        FollowRecommendation(user=user_summary(record), recommend_type=POPULAR_ACCOUNTS)
        for record in await top_users(store, TRENDING_LIMIT)
        if record["id"] not in exclude
    ]


async def _gather_topics(store, user: dict) -> tuple[list[str], list[str], list[str]]:
    """Pick up to three distinct topics from each source, most recent first."""
    chosen: list[str] = []

    def take(name, bucket) -> None:
        if name and name not in chosen:
            chosen.append(name)
            bucket.append(name)

    history_topics: list[str] = []
    for entry in reversed(user.get("history") or []):
        if len(history_topics) >= TOPICS_PER_SOURCE:
            break
        take(entry.get("topic"), history_topics)

    interest_topics: list[str] = []
    for topic_id in reversed(user.get("followingTopics") or []):
        if len(interest_topics) >= TOPICS_PER_SOURCE:
            break
        take(await topic_name(store, topic_id), interest_topics)

    people_topics: list[str] = []
    for followed_id in reversed(user.get("following") or []):
        if len(people_topics) >= TOPICS_PER_SOURCE:
            break
        try:
            followed = await store.get_by_id("users", str(followed_id), ["followingTopics"])
            if followed is None:
                continue
            for topic_id in followed.get("followingTopics") or []:
                if len(people_topics) >= TOPICS_PER_SOURCE:
                    break
                take(await topic_name(store, topic_id), people_topics)
        except Exception:
            logger.exception("Topics of followed user %s failed", followed_id)

    return history_topics, interest_topics, people_topics


async def follow_all_recommendation(
    store,
    user_id: str,
    rng: random.Random | None = None,
) -> list[FollowRecommendation]:
    """Composite suggestions in the order recent activity, interests,
    people you follow, popular accounts."""
    user = await _load_user(store, user_id, ["history", "followingTopics", "following"])
    exclude = {str(f) for f in user.get("following") or []}
    exclude.add(user_id)

    history_topics, interest_topics, people_topics = await _gather_topics(store, user)
    window_size = composite_window_size(
        len(history_topics) + len(interest_topics) + len(people_topics)
    )

    suggestions: list[FollowRecommendation] = []
    sources = [
        (history_topics, RECENT_ACTIVITY),
        (interest_topics, INTEREST),
        (people_topics, PEOPLE_YOU_FOLLOW),
    ]
    for topics, tag in sources:
        for name in topics:
            try:
                candidates = await topic_pool(store, name, "recommendedUsers")
                if candidates is None:
                    continue
                for index in sample_window(len(candidates), window_size, rng):
                    candidate_id = str(candidates[index])
                    if candidate_id in exclude:
                        continue
                    summary = await resolve_user(store, candidate_id)
                    if summary is None:
                        continue
                    suggestions.append(FollowRecommendation(user=summary, recommend_type=tag))
                    exclude.add(candidate_id)
            except Exception:
                logger.exception("Follow suggestions for topic %r failed", name)

    for record in await top_users(store, COMPOSITE_POPULAR_LIMIT):
        if record["id"] in exclude:
            continue
        suggestions.append(
            FollowRecommendation(user=user_summary(record), recommend_type=POPULAR_ON_PHANTOM)
        )
        exclude.add(record["id"])

    logger.info("Built %d follow suggestions for user %s", len(suggestions), user_id)
    return suggestions
