"""Opt-in notification recommenders.

Provides an abstraction for named recommenders that can be called
internally (e.g. from a scheduled job) or via an API endpoint.
"""

from .base import (
    NotificationRecommender,
    get_recommender,
    list_recommenders,
    register_recommender,
)
from .boards import BoardsForYouRecommender
from .pins import PinsForYouRecommender, PinsInspiredRecommender, PopularPinsRecommender

# Register built-in recommenders
register_recommender(BoardsForYouRecommender())
register_recommender(PopularPinsRecommender())
register_recommender(PinsForYouRecommender())
register_recommender(PinsInspiredRecommender())

__all__ = [
    "NotificationRecommender",
    "get_recommender",
    "list_recommenders",
    "register_recommender",
    "BoardsForYouRecommender",
    "PinsForYouRecommender",
    "PinsInspiredRecommender",
    "PopularPinsRecommender",
]
