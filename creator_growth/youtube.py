import asyncio
import re
from typing import Any, Dict, Optional

import httpx
from yt_dlp.utils import DownloadError

from .models import CompetitorMetadata, YoutubeVideoDetails
from .services import extract_video_info

YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"

_VIDEO_URL_RE = re.compile(
    r"(?:https?://)?(?:www\.|m\.)?youtu(?:be\.com/(?:watch\?v=|embed/|v/|shorts/|live/)|\.be/)([a-zA-Z0-9_-]{11})"
)
_VIDEO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")
# yt-dlp messages for videos that do not exist or cannot be viewed
_MISSING_VIDEO_RE = re.compile(r"unavailable|private video|removed|does not exist|has been terminated", re.I)


class YouTubeError(Exception):
    pass


class VideoNotFound(YouTubeError):
    pass


def parse_video_id(url: str) -> Optional[str]:
    """Video id from a watch/embed/v/shorts/live/youtu.be link, or a bare 11-char id."""
    if not url:
        return None
    url = url.strip()
    match = _VIDEO_URL_RE.search(url)
    if match:
        return match.group(1)
    if _VIDEO_ID_RE.match(url):
        return url
    return None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class YouTubeClient:
    """
    Video metadata lookup.

    Uses the YouTube Data API when an API key is configured and falls back
    to yt-dlp's metadata extraction otherwise.
    """

    def __init__(self, api_key: str = "", cookies: str = "", http: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.cookies = cookies
        self.http = http

    async def _get(self, params: Dict[str, str]) -> httpx.Response:
        if self.http is not None:
            return await self.http.get(YOUTUBE_VIDEOS_URL, params=params)
        async with httpx.AsyncClient(timeout=15.0) as http:
            return await http.get(YOUTUBE_VIDEOS_URL, params=params)

    async def _from_data_api(self, video_id: str) -> Dict[str, Any]:
        params = {"part": "snippet,statistics", "id": video_id, "key": self.api_key}
        try:
            response = await self._get(params)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise YouTubeError(f"YouTube API request failed: {e}") from e

        if not isinstance(data, dict):
            raise YouTubeError("Unexpected YouTube API response")

        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise YouTubeError(message or "YouTube API error")
        items = data.get("items") or []
        if not items:
            raise VideoNotFound("Video not found")

        snippet = items[0].get("snippet", {})
        statistics = items[0].get("statistics", {})
        return {
            "title": snippet.get("title", ""),
            "description": snippet.get("description", ""),
            "tags": snippet.get("tags") or [],
            "channelTitle": snippet.get("channelTitle", ""),
            "viewCount": _to_int(statistics.get("viewCount")),
            "likeCount": _to_int(statistics.get("likeCount")),
            "publishedAt": snippet.get("publishedAt"),
        }

    async def _from_yt_dlp(self, video_id: str) -> Dict[str, Any]:
        url = f"https://www.youtube.com/watch?v={video_id}"
        try:
            info = await asyncio.to_thread(extract_video_info, url, self.cookies)
        except DownloadError as e:
            if _MISSING_VIDEO_RE.search(str(e)):
                raise VideoNotFound(f"Video not found: {e}") from e
            raise YouTubeError(f"yt-dlp lookup failed: {e}") from e
        upload_date = info.get("upload_date")  # YYYYMMDD
        published_at = None
        if upload_date and len(upload_date) == 8:
            published_at = f"{upload_date[:4]}-{upload_date[4:6]}-{upload_date[6:]}"
        return {
            "title": info.get("title", ""),
            "description": info.get("description") or "",
            "tags": info.get("tags") or [],
            "channelTitle": info.get("channel") or info.get("uploader") or "",
            "viewCount": _to_int(info.get("view_count")),
            "likeCount": _to_int(info.get("like_count")),
            "publishedAt": published_at,
        }

    async def video_metadata(self, video_id: str) -> Dict[str, Any]:
        if self.api_key:
            return await self._from_data_api(video_id)
        return await self._from_yt_dlp(video_id)

    async def fetch_details(self, video_id: str) -> YoutubeVideoDetails:
        meta = await self.video_metadata(video_id)
        return YoutubeVideoDetails(
            title=meta["title"],
            description=meta["description"],
            tags=meta["tags"],
            channelTitle=meta["channelTitle"],
        )

    async def competitor_metadata(self, url: str) -> Optional[CompetitorMetadata]:
        video_id = parse_video_id(url)
        if not video_id:
            return None
        meta = await self.video_metadata(video_id)
        return CompetitorMetadata(
            title=meta["title"],
            viewCount=meta["viewCount"],
            likeCount=meta["likeCount"],
            publishedAt=meta["publishedAt"],
        )
