"""Error taxonomy shared by the feed generator and the recommenders.

Every error carries the HTTP status the service layer answers with, so the
FastAPI app can render them through a single exception handler.
"""


class RecommendationError(Exception):
    """Base class for failures surfaced to callers."""

    status_code = 500


class InvalidArgument(RecommendationError):
    """A malformed or absent identifier (raised before any store access)."""

    status_code = 400


class NotFound(RecommendationError):
    """The target user, pin, board or section does not exist."""

    status_code = 404


class PreconditionFailed(RecommendationError):
    """The user has not opted into this recommendation type."""

    status_code = 412


class OutOfRange(RecommendationError):
    """The requested page is not fully available in the materialized list."""

    status_code = 416


class StoreError(RecommendationError):
    """The content store returned something we cannot interpret."""

    status_code = 502
