from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_core import PydanticCustomError

from .errors import ContentValidationError

Platform = Literal["YouTube", "Instagram", "TikTok"]
ChannelSize = Literal["Small", "Medium", "Large"]
VideoType = Literal["Short", "Long"]
Potential = Literal["Low", "Medium", "High"]

IDEA_MIN_LENGTH = 10


# --- INPUT ---

class AnalysisRequest(BaseModel):
    platform: Platform = "YouTube"
    niche: str = Field(min_length=1)
    channelSize: ChannelSize
    videoType: VideoType
    idea: Optional[str] = None
    transcript: Optional[str] = None
    youtubeUrl: Optional[str] = None

    @field_validator("niche", mode="before")
    @classmethod
    def strip_niche(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("idea", "transcript", "youtubeUrl", mode="before")
    @classmethod
    def blank_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("idea")
    @classmethod
    def idea_is_detailed(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value.strip()) < IDEA_MIN_LENGTH:
            raise PydanticCustomError(
                "idea_too_short",
                "Please provide a more detailed idea (at least 10 characters)",
            )
        return value

    @model_validator(mode="after")
    def has_content(self) -> "AnalysisRequest":
        if not (self.idea or self.transcript or self.youtubeUrl):
            raise PydanticCustomError(
                "content_missing",
                "Provide a video idea, a transcript or a YouTube URL",
            )
        return self


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


# --- OUTPUT CONTRACT ---

class PerformancePrediction(BaseModel):
    potential: Potential
    confidenceScore: float = Field(ge=0, le=100)
    reason: str


class NextVideoIdea(BaseModel):
    idea: str
    reason: str


class AnalysisResponse(BaseModel):
    titles: List[str]               # normally 3
    description: str
    hashtags: List[str]
    tags: List[str]
    performancePrediction: PerformancePrediction
    nextVideoIdeas: List[NextVideoIdea]  # normally 2


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    history: List[ChatTurn] = []
    context: Optional[AnalysisResponse] = None


class ChatResponse(BaseModel):
    message: str
    updatedAnalysis: Optional[AnalysisResponse] = None


class CompareRequest(BaseModel):
    userVideo: AnalysisResponse
    competitorUrl: Optional[str] = None


class CompareResponse(BaseModel):
    score: float = Field(ge=0, le=100)
    strength: str
    weakness: str
    recommendation: str
    marketGap: str


# --- COLLABORATORS ---

class YoutubeVideoRequest(BaseModel):
    url: str


class YoutubeVideoDetails(BaseModel):
    title: str
    description: str
    tags: List[str]
    channelTitle: str


class CompetitorMetadata(BaseModel):
    title: str
    viewCount: Optional[int] = None
    likeCount: Optional[int] = None
    publishedAt: Optional[str] = None


class UploadResponse(BaseModel):
    transcript: str
    analysis: Optional[AnalysisResponse] = None


class ViewerCount(BaseModel):
    count: int


class HistoryEntry(BaseModel):
    id: int
    platform: str
    niche: str
    channelSize: str
    videoType: str
    idea: Optional[str] = None
    transcript: Optional[str] = None
    youtubeUrl: Optional[str] = None
    analysis: Dict[str, Any]
    createdAt: datetime


class ErrorResponse(BaseModel):
    message: str
    field: Optional[str] = None


def first_error(errors: Sequence[Dict[str, Any]], skip: Tuple[str, ...] = ()) -> Tuple[Optional[str], str]:
    """Reduce pydantic error details to the (field, message) pair sent to clients."""
    if not errors:
        return None, "Invalid request"
    error = errors[0]
    loc = [str(part) for part in error.get("loc", ()) if part not in skip]
    field = ".".join(loc) or None
    if error.get("type") == "content_missing":
        field = "idea"
    return field, error.get("msg", "Invalid request")


def parse_analysis_request(body: Any) -> AnalysisRequest:
    try:
        return AnalysisRequest.model_validate(body)
    except ValidationError as exc:
        field, message = first_error(exc.errors())
        raise ContentValidationError(field, message) from exc
