import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .ai_client import AIClient, build_ai_client
from .config import AIProviderConfig, Settings, get_settings
from .errors import ContentValidationError, Err
from .models import (
    AnalysisRequest,
    AnalysisResponse,
    ChatRequest,
    ChatResponse,
    CompareRequest,
    CompareResponse,
    ErrorResponse,
    HistoryEntry,
    UploadResponse,
    ViewerCount,
    YoutubeVideoDetails,
    YoutubeVideoRequest,
    first_error,
    parse_analysis_request,
)
from .pipeline import GrowthPipeline, run_logged
from .services import (
    MediaError,
    Transcriber,
    UploadTooLarge,
    build_transcriber,
    extract_audio,
    is_video_upload,
    remove_quietly,
    save_upload,
)
from .storage import Storage, UnavailableStorage, hash_ip
from .youtube import VideoNotFound, YouTubeClient, YouTubeError, parse_video_id

load_dotenv()

logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_LENGTH = 5

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    500: {"model": ErrorResponse, "description": "Processing failed"},
}


# --- DEPENDENCIES ---

@lru_cache
def _ai_client_for(config: AIProviderConfig) -> AIClient:
    return build_ai_client(config)


@lru_cache
def _storage_for(database_url: str) -> Storage:
    return Storage(database_url)


def get_ai_client(settings: Settings = Depends(get_settings)) -> AIClient:
    return _ai_client_for(settings.ai_provider_config())


def get_storage(settings: Settings = Depends(get_settings)) -> Storage:
    try:
        return _storage_for(settings.DATABASE_URL)
    except Exception as e:
        # history and viewer writes never fail the request
        logger.error("Storage unavailable: %s", e)
        return UnavailableStorage(str(e))


def get_youtube(settings: Settings = Depends(get_settings)) -> YouTubeClient:
    return YouTubeClient(api_key=settings.YOUTUBE_API_KEY, cookies=settings.YOUTUBE_COOKIES)


def get_transcriber(settings: Settings = Depends(get_settings)) -> Transcriber:
    return build_transcriber(settings)


def get_pipeline(
    ai: AIClient = Depends(get_ai_client),
    youtube: YouTubeClient = Depends(get_youtube),
) -> GrowthPipeline:
    return GrowthPipeline(ai, youtube)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    try:
        _storage_for(settings.DATABASE_URL).init_schema()
    except Exception:
        logger.exception("Database bootstrap skipped")
    yield


app = FastAPI(title="Creator Growth AI API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- ERROR RESPONSES ---

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    field, message = first_error(exc.errors(), skip=("body",))
    return JSONResponse(status_code=400, content={"message": message, "field": field})


@app.exception_handler(ContentValidationError)
async def content_validation_handler(request: Request, exc: ContentValidationError):
    return JSONResponse(status_code=400, content={"message": exc.message, "field": exc.field})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


# --- ROUTES ---

def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@app.get("/")
def root(request: Request, background_tasks: BackgroundTasks, storage: Storage = Depends(get_storage)):
    background_tasks.add_task(run_logged, storage.record_viewer, hash_ip(_client_ip(request)))
    return {"status": "Server running", "tech": "FastAPI"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/api/viewers", response_model=ViewerCount, responses={500: ERROR_RESPONSES[500]})
def viewers_endpoint(storage: Storage = Depends(get_storage)):
    try:
        return ViewerCount(count=storage.viewer_count())
    except Exception:
        logger.exception("Viewer count failed")
        raise HTTPException(status_code=500, detail="Failed to fetch viewer count")


@app.get("/api/history", response_model=List[HistoryEntry], responses={500: ERROR_RESPONSES[500]})
def history_endpoint(storage: Storage = Depends(get_storage)):
    try:
        return storage.analysis_history()
    except Exception:
        logger.exception("History lookup failed")
        raise HTTPException(status_code=500, detail="Failed to fetch history")


@app.post("/api/analyze", response_model=AnalysisResponse, responses=ERROR_RESPONSES)
async def analyze_endpoint(
    req: AnalysisRequest,
    background_tasks: BackgroundTasks,
    pipeline: GrowthPipeline = Depends(get_pipeline),
    storage: Storage = Depends(get_storage),
):
    result = await pipeline.analyze(req)
    if isinstance(result, Err):
        raise HTTPException(status_code=500, detail="Failed to analyze video")
    background_tasks.add_task(run_logged, storage.save_analysis, req, result.value)
    return result.value


@app.post("/api/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
async def chat_endpoint(req: ChatRequest, pipeline: GrowthPipeline = Depends(get_pipeline)):
    result = await pipeline.chat(req)
    if isinstance(result, Err):
        raise HTTPException(status_code=500, detail="Failed to process chat")
    return result.value


@app.post("/api/compare", response_model=CompareResponse, responses=ERROR_RESPONSES)
async def compare_endpoint(req: CompareRequest, pipeline: GrowthPipeline = Depends(get_pipeline)):
    result = await pipeline.compare(req)
    if isinstance(result, Err):
        raise HTTPException(status_code=500, detail="Comparison failed")
    return result.value


@app.post(
    "/api/fetchYoutubeVideo",
    response_model=YoutubeVideoDetails,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "Video not found"}},
)
async def fetch_youtube_endpoint(req: YoutubeVideoRequest, youtube: YouTubeClient = Depends(get_youtube)):
    video_id = parse_video_id(req.url)
    if not video_id:
        raise HTTPException(status_code=400, detail="Invalid YouTube URL or Video ID")
    try:
        return await youtube.fetch_details(video_id)
    except VideoNotFound:
        raise HTTPException(status_code=404, detail="Video not found")
    except YouTubeError as e:
        logger.error("YouTube lookup failed for %s: %s", video_id, e)
        raise HTTPException(status_code=500, detail="Failed to fetch YouTube video details")


@app.post(
    "/api/uploadVideo",
    response_model=UploadResponse,
    responses={**ERROR_RESPONSES, 422: {"model": ErrorResponse, "description": "No usable transcript"}},
)
async def upload_video_endpoint(
    background_tasks: BackgroundTasks,
    video: UploadFile = File(...),
    analyze: bool = Form(True),
    settings: Settings = Depends(get_settings),
    transcriber: Transcriber = Depends(get_transcriber),
    pipeline: GrowthPipeline = Depends(get_pipeline),
    storage: Storage = Depends(get_storage),
):
    if not is_video_upload(video.content_type):
        raise HTTPException(status_code=400, detail="Unsupported file type. Please upload .mp4 or .mov")

    video_path = audio_path = None
    try:
        try:
            video_path = await save_upload(video, settings.TEMP_DIR, settings.UPLOAD_MAX_BYTES)
        except UploadTooLarge as e:
            raise HTTPException(status_code=400, detail=f"Upload error: {e}")

        logger.info("Extracting audio from %s", video_path)
        audio_path = await extract_audio(video_path, settings.TRANSCODE_TIMEOUT_SECONDS)

        transcript = (await transcriber.transcribe(audio_path)).strip()
        logger.info("Transcript length: %d", len(transcript))
        if len(transcript) < MIN_TRANSCRIPT_LENGTH:
            raise HTTPException(
                status_code=422,
                detail="Could not transcribe audio. The video might be silent or too short.",
            )

        if not analyze:
            return UploadResponse(transcript=transcript)

        req = parse_analysis_request({
            "platform": "YouTube",
            "niche": "General",
            "channelSize": "Small",
            "videoType": "Long",
            "transcript": transcript,
        })
        result = await pipeline.analyze(req)
        if isinstance(result, Err):
            raise HTTPException(status_code=500, detail="Failed to analyze video")
        background_tasks.add_task(run_logged, storage.save_analysis, req, result.value)
        return UploadResponse(transcript=transcript, analysis=result.value)
    except MediaError as e:
        logger.error("Video processing failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process video")
    finally:
        remove_quietly(video_path)
        remove_quietly(audio_path)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
