"""Recommendations router - who to follow, and opt-in notifications.

GET /users/{user_id}/follow-recommendations
    Composite account suggestions.

GET /recommenders
    List available notification recommenders.

POST /users/{user_id}/recommenders/{name}
    Run one notification recommender for the user.

POST / DELETE /users/{user_id}/following/{target_id}
    Follow / unfollow another account.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ..lib.follow import (
    follow_all_recommendation,
    topic_recommendation,
    trending_recommendation,
)
from ..lib.graph import follow_user, unfollow_user
from ..lib.recommenders import get_recommender, list_recommenders
from ..models import FollowRecommendation
from ..security import verify_api_key

router = APIRouter(tags=["recommendations"], dependencies=[Depends(verify_api_key)])

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class FollowRecommendationResponse(BaseModel):
    recommendations: list[FollowRecommendation]


class RecommenderListResponse(BaseModel):
    """Lists available recommender names."""

    recommenders: list[str]


class SuccessResponse(BaseModel):
    success: bool = Field(True, description="Always true when the call returns")


# ---------------------------------------------------------------------------
# Follow suggestions
# ---------------------------------------------------------------------------

@router.get("/users/{user_id}/follow-recommendations", response_model=FollowRecommendationResponse)
async def follow_recommendations(request: Request, user_id: str) -> FollowRecommendationResponse:
    rng = getattr(request.app.state, "rng", None)
    recommendations = await follow_all_recommendation(request.app.state.store, user_id, rng=rng)
    return FollowRecommendationResponse(recommendations=recommendations)


@router.get(
    "/users/{user_id}/follow-recommendations/trending",
    response_model=FollowRecommendationResponse,
)
async def follow_recommendations_trending(request: Request, user_id: str) -> FollowRecommendationResponse:
    recommendations = await trending_recommendation(request.app.state.store, user_id)
    return FollowRecommendationResponse(recommendations=recommendations)


@router.get("/topics/{topic_name}/follow-recommendations", response_model=FollowRecommendationResponse)
async def follow_recommendations_for_topic(
    request: Request,
    topic_name: str,
    user_id: str = Query(..., description="User asking for suggestions"),
) -> FollowRecommendationResponse:
    recommendations = await topic_recommendation(request.app.state.store, topic_name, user_id)
    return FollowRecommendationResponse(recommendations=recommendations)


# ---------------------------------------------------------------------------
# Notification recommenders
# ---------------------------------------------------------------------------

@router.get("/recommenders", response_model=RecommenderListResponse)
async def recommenders_list() -> RecommenderListResponse:
    """Return the names of all registered notification recommenders."""
    return RecommenderListResponse(recommenders=list_recommenders())


@router.post("/users/{user_id}/recommenders/{name}", response_model=SuccessResponse)
async def recommenders_run(request: Request, user_id: str, name: str) -> SuccessResponse:
    recommender = get_recommender(name)
    if recommender is None:
        raise HTTPException(status_code=404, detail=f"Unknown recommender: {name}")
    state = request.app.state
    await recommender.run(state.store, state.notifier, user_id, rng=getattr(state, "rng", None))
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Follow graph
# ---------------------------------------------------------------------------

@router.post("/users/{user_id}/following/{target_id}", response_model=SuccessResponse)
async def following_add(request: Request, user_id: str, target_id: str) -> SuccessResponse:
    await follow_user(request.app.state.store, user_id, target_id)
    return SuccessResponse()


@router.delete("/users/{user_id}/following/{target_id}", response_model=SuccessResponse)
async def following_remove(request: Request, user_id: str, target_id: str) -> SuccessResponse:
    await unfollow_user(request.app.state.store, user_id, target_id)
    return SuccessResponse()
