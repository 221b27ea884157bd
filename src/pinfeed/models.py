from pydantic import BaseModel, ConfigDict, Field


class PinSummary(BaseModel):
    """A pin as stored in ``homeFeed`` / ``more`` lists."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Identifier of the pin")
    image_id: str | None = Field(None, alias="imageId", description="Image of the pin")


class UserSummary(BaseModel):
    """Public profile fields of an account, with its follower count."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    profile_image: str | None = Field(None, alias="profileImage")
    google: bool | None = None
    google_image: str | None = Field(None, alias="googleImage")
    followers: int = Field(0, description="Number of followers")


class FollowRecommendation(BaseModel):
    """An account suggestion tagged with the strategy that produced it."""

    model_config = ConfigDict(populate_by_name=True)

    user: UserSummary
    recommend_type: str = Field(..., alias="recommendType")


class BoardSummary(BaseModel):
    """A recommended board with its resolved cover images."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str | None = None
    topic: str | None = None
    description: str | None = None
    cover_images: list[str] = Field(default_factory=list, alias="coverImages")


class GenerationResult(BaseModel):
    """Summary of one feed / more-like-this generation run."""

    total: int = Field(..., description="Number of items accumulated by the run")
