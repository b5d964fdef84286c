import httpx
import pytest
from yt_dlp.utils import DownloadError

from creator_growth import youtube as youtube_module
from creator_growth.youtube import VideoNotFound, YouTubeClient, YouTubeError, parse_video_id


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://m.youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://youtube.com/shorts/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/live/dQw4w9WgXcQ",
        "youtube.com/v/dQw4w9WgXcQ",
        "dQw4w9WgXcQ",
        "  dQw4w9WgXcQ  ",
    ],
)
def test_parse_video_id(url):
    assert parse_video_id(url) == "dQw4w9WgXcQ"


@pytest.mark.parametrize("url", ["", "https://example.com", "https://vimeo.com/123456", "short"])
def test_parse_video_id_rejects(url):
    assert parse_video_id(url) is None


@pytest.mark.asyncio
async def test_data_api_metadata():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"items": [{
            "snippet": {"title": "T", "description": "D", "channelTitle": "C", "publishedAt": "2024-01-01T00:00:00Z"},
            "statistics": {"viewCount": "10", "likeCount": "oops"},
        }]})

    client = YouTubeClient(api_key="yt_key", http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    meta = await client.video_metadata("dQw4w9WgXcQ")

    assert seen["params"] == {"part": "snippet,statistics", "id": "dQw4w9WgXcQ", "key": "yt_key"}
    assert meta["tags"] == []
    assert meta["viewCount"] == 10
    assert meta["likeCount"] is None


@pytest.mark.asyncio
async def test_data_api_error_message():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "API key not valid"}})

    client = YouTubeClient(api_key="bad", http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(YouTubeError, match="API key not valid"):
        await client.video_metadata("dQw4w9WgXcQ")


@pytest.mark.asyncio
async def test_yt_dlp_fallback_without_api_key(monkeypatch):
    def fake_info(url, cookies):
        assert url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        return {
            "title": "T",
            "description": None,
            "tags": ["a"],
            "uploader": "Uploader",
            "view_count": 99,
            "upload_date": "20240131",
        }

    monkeypatch.setattr(youtube_module, "extract_video_info", fake_info)
    details = await YouTubeClient().fetch_details("dQw4w9WgXcQ")
    assert details.channelTitle == "Uploader"
    assert details.description == ""

    competitor = await YouTubeClient().competitor_metadata("https://youtu.be/dQw4w9WgXcQ")
    assert competitor.viewCount == 99
    assert competitor.publishedAt == "2024-01-31"


@pytest.mark.asyncio
async def test_yt_dlp_unavailable_video(monkeypatch):
    def fake_info(url, cookies):
        raise DownloadError("Video unavailable")

    monkeypatch.setattr(youtube_module, "extract_video_info", fake_info)
    with pytest.raises(VideoNotFound):
        await YouTubeClient().fetch_details("dQw4w9WgXcQ")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message",
    [
        "ERROR: [youtube] dQw4w9WgXcQ: Private video. Sign in if you've been granted access to this video",
        "ERROR: [youtube] dQw4w9WgXcQ: This video has been removed by the uploader",
    ],
)
async def test_yt_dlp_missing_video_messages(monkeypatch, message):
    def fake_info(url, cookies):
        raise DownloadError(message)

    monkeypatch.setattr(youtube_module, "extract_video_info", fake_info)
    with pytest.raises(VideoNotFound):
        await YouTubeClient().fetch_details("dQw4w9WgXcQ")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message",
    [
        "ERROR: unable to download video data: HTTP Error 429: Too Many Requests",
        "ERROR: [youtube] dQw4w9WgXcQ: Sign in to confirm you're not a bot",
        "ERROR: Unable to download webpage: <urlopen error [Errno -3] Temporary failure in name resolution>",
    ],
)
async def test_yt_dlp_other_failures_are_not_404(monkeypatch, message):
    def fake_info(url, cookies):
        raise DownloadError(message)

    monkeypatch.setattr(youtube_module, "extract_video_info", fake_info)
    with pytest.raises(YouTubeError) as excinfo:
        await YouTubeClient().fetch_details("dQw4w9WgXcQ")
    assert not isinstance(excinfo.value, VideoNotFound)


@pytest.mark.asyncio
async def test_competitor_metadata_ignores_non_youtube_urls():
    assert await YouTubeClient(api_key="k").competitor_metadata("https://vimeo.com/1") is None
