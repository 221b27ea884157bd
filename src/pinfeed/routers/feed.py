"""Feed router - generation and paginated reads of materialized pin lists.

POST /users/{user_id}/home-feed
    Rebuild the user's home feed.

GET /users/{user_id}/home-feed
    Read one page of it.

The ``more`` lists of pins, boards and board sections follow the same
POST (generate) / GET (page) pattern.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from ..lib.feed import (
    generate_board_more_like,
    generate_pin_more_like,
    generate_section_more_like,
    read_board_more_like,
    read_home_feed_page,
    read_pin_more_like,
    read_section_more_like,
    regenerate_home_feed,
)
from ..models import GenerationResult, PinSummary
from ..security import verify_api_key

router = APIRouter(tags=["feed"], dependencies=[Depends(verify_api_key)])

logger = logging.getLogger(__name__)


class PinPageResponse(BaseModel):
    """One page of a materialized pin list."""

    pins: list[PinSummary]


def _state(request: Request):
    state = request.app.state
    return state.store, getattr(state, "rng", None)


# ---------------------------------------------------------------------------
# Home feed
# ---------------------------------------------------------------------------

@router.post("/users/{user_id}/home-feed", response_model=GenerationResult)
async def home_feed_generate(request: Request, user_id: str) -> GenerationResult:
    store, rng = _state(request)
    return await regenerate_home_feed(store, user_id, rng=rng)


@router.get("/users/{user_id}/home-feed", response_model=PinPageResponse)
async def home_feed_page(
    request: Request,
    user_id: str,
    limit: int = Query(10, ge=0),
    offset: int = Query(0, ge=0),
) -> PinPageResponse:
    store, _ = _state(request)
    return PinPageResponse(pins=await read_home_feed_page(store, user_id, limit, offset))


# ---------------------------------------------------------------------------
# More like this
# ---------------------------------------------------------------------------

@router.post("/pins/{pin_id}/more", response_model=GenerationResult)
async def pin_more_generate(
    request: Request,
    pin_id: str,
    user_id: str = Query(..., description="User asking for the list"),
) -> GenerationResult:
    store, rng = _state(request)
    return await generate_pin_more_like(store, user_id, pin_id, rng=rng)


@router.get("/pins/{pin_id}/more", response_model=PinPageResponse)
async def pin_more_page(
    request: Request,
    pin_id: str,
    limit: int = Query(10, ge=0),
    offset: int = Query(0, ge=0),
) -> PinPageResponse:
    store, _ = _state(request)
    return PinPageResponse(pins=await read_pin_more_like(store, pin_id, limit, offset))


@router.post("/boards/{board_id}/more", response_model=GenerationResult)
async def board_more_generate(
    request: Request,
    board_id: str,
    user_id: str = Query(..., description="User asking for the list"),
) -> GenerationResult:
    store, rng = _state(request)
    return await generate_board_more_like(store, user_id, board_id, rng=rng)


@router.get("/boards/{board_id}/more", response_model=PinPageResponse)
async def board_more_page(
    request: Request,
    board_id: str,
    limit: int = Query(10, ge=0),
    offset: int = Query(0, ge=0),
) -> PinPageResponse:
    store, _ = _state(request)
    return PinPageResponse(pins=await read_board_more_like(store, board_id, limit, offset))


@router.post("/boards/{board_id}/sections/{section_id}/more", response_model=GenerationResult)
async def section_more_generate(
    request: Request,
    board_id: str,
    section_id: str,
    user_id: str = Query(..., description="User asking for the list"),
) -> GenerationResult:
    store, rng = _state(request)
    return await generate_section_more_like(store, user_id, board_id, section_id, rng=rng)


@router.get("/boards/{board_id}/sections/{section_id}/more", response_model=PinPageResponse)
async def section_more_page(
    request: Request,
    board_id: str,
    section_id: str,
    limit: int = Query(10, ge=0),
    offset: int = Query(0, ge=0),
) -> PinPageResponse:
    store, _ = _state(request)
    return PinPageResponse(
        pins=await read_section_more_like(store, board_id, section_id, limit, offset)
    )
