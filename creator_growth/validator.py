import json
from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import MalformedResponseError
from .models import AnalysisResponse, ChatResponse, CompareResponse

M = TypeVar("M", bound=BaseModel)


def validate_payload(model: Type[M], text: str) -> M:
    """Parse ``text`` as JSON and check it against ``model``.

    No defaults are filled in for missing fields and nothing is coerced
    beyond what JSON already typed (strict mode), so "85" is not a score.
    """
    try:
        json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedResponseError(f"AI response is not valid JSON: {exc}", text) from exc

    try:
        return model.model_validate_json(text, strict=True)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
        )
        raise MalformedResponseError(f"AI response does not match {model.__name__}: {problems}", text) from exc


def parse_analysis_response(text: str) -> AnalysisResponse:
    return validate_payload(AnalysisResponse, text)


def parse_chat_response(text: str) -> ChatResponse:
    return validate_payload(ChatResponse, text)


def parse_compare_response(text: str) -> CompareResponse:
    return validate_payload(CompareResponse, text)
