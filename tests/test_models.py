import pytest

from creator_growth.errors import ContentValidationError
from creator_growth.models import AnalysisRequest, parse_analysis_request


def _body(**overrides):
    body = {
        "platform": "YouTube",
        "niche": "Tech",
        "channelSize": "Small",
        "videoType": "Long",
        "idea": "A 10-minute tutorial on building a REST API in Go",
    }
    body.update(overrides)
    return body


def test_parse_valid_request():
    req = parse_analysis_request(_body())
    assert isinstance(req, AnalysisRequest)
    assert req.platform == "YouTube"
    assert req.transcript is None
    assert req.youtubeUrl is None


def test_platform_defaults_to_youtube():
    body = _body()
    del body["platform"]
    assert parse_analysis_request(body).platform == "YouTube"


@pytest.mark.parametrize(
    "field,value",
    [
        ("platform", "Facebook"),
        ("channelSize", "Huge"),
        ("videoType", "Medium"),
    ],
)
def test_enum_fields_reject_unknown_values(field, value):
    with pytest.raises(ContentValidationError) as exc_info:
        parse_analysis_request(_body(**{field: value}))
    assert exc_info.value.field == field


def test_empty_niche_is_rejected():
    with pytest.raises(ContentValidationError) as exc_info:
        parse_analysis_request(_body(niche="   "))
    assert exc_info.value.field == "niche"


def test_short_idea_is_rejected():
    with pytest.raises(ContentValidationError) as exc_info:
        parse_analysis_request(_body(idea="too short"))
    assert exc_info.value.field == "idea"
    assert "10 characters" in exc_info.value.message


def test_request_without_any_content_is_rejected():
    with pytest.raises(ContentValidationError) as exc_info:
        parse_analysis_request(_body(idea="", transcript="  ", youtubeUrl=None))
    assert exc_info.value.field == "idea"


def test_transcript_alone_is_enough():
    req = parse_analysis_request(_body(idea=None, transcript="so today we talk about goroutines"))
    assert req.idea is None
    assert req.transcript.startswith("so today")


def test_youtube_url_alone_is_enough():
    req = parse_analysis_request(_body(idea="", youtubeUrl="https://youtu.be/dQw4w9WgXcQ"))
    assert req.idea is None
    assert req.youtubeUrl == "https://youtu.be/dQw4w9WgXcQ"


def test_non_object_body_is_rejected():
    with pytest.raises(ContentValidationError):
        parse_analysis_request(["not", "an", "object"])
