from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ContentValidationError(Exception):
    """Request body failed the input schema."""

    def __init__(self, field: Optional[str], message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class PipelineError(Exception):
    """Base for failures between the prompt and a validated response."""


class AdapterError(PipelineError):
    """The AI provider could not be reached or produced no text."""


class MalformedResponseError(PipelineError):
    """Provider text is not JSON matching the expected contract.

    ``raw_text`` is kept for the logs only and must not be sent to clients.
    """

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: PipelineError


Result = Union[Ok[T], Err]
