import json
from typing import Optional

from .models import AnalysisRequest, AnalysisResponse, CompetitorMetadata

ANALYSIS_SKELETON = """{
  "titles": ["", "", ""],
  "description": "",
  "hashtags": ["", ""],
  "tags": ["", ""],
  "performancePrediction": {
    "potential": "Low | Medium | High",
    "confidenceScore": 0,
    "reason": ""
  },
  "nextVideoIdeas": [
    { "idea": "", "reason": "" },
    { "idea": "", "reason": "" }
  ]
}"""

CHAT_SKELETON = """{
  "message": "",
  "updatedAnalysis": null
}"""

COMPARE_SKELETON = """{
  "score": 0,
  "strength": "",
  "weakness": "",
  "recommendation": "",
  "marketGap": ""
}"""

JSON_ONLY = "Return ONLY valid JSON. Do not write anything outside the JSON object."

NO_CONTENT = "N/A"
URL_ONLY_CONTENT = "Provided via YouTube URL"
GENERAL_BENCHMARK = "N/A (General niche benchmark)"

CHAT_SYSTEM_PROMPT = "You are a helpful YouTube strategy assistant."


def content_line(req: AnalysisRequest) -> str:
    if req.idea:
        return req.idea
    if req.transcript:
        return req.transcript
    if req.youtubeUrl:
        return URL_ONLY_CONTENT
    return NO_CONTENT


def build_analysis_prompt(req: AnalysisRequest) -> str:
    lines = [
        f"Act as a professional {req.platform} growth strategist. Analyze the following video content:",
        "",
        f"Platform: {req.platform}",
        f"Niche: {req.niche}",
        f"Channel Size: {req.channelSize}",
        f"Video Type: {req.videoType}",
        f"Idea/Script/Transcript: {content_line(req)}",
    ]
    if req.youtubeUrl:
        lines.append(f"YouTube URL: {req.youtubeUrl}")
    lines += [
        "",
        "Write 3 high-CTR titles (optimized for CTR, not clickbait), an SEO-optimized description "
        "whose first 2 lines work as a hook, relevant hashtags and tags, a performance prediction "
        "and 2 ideas for the next video.",
        "Do NOT exaggerate views or guarantee virality. Use range-based prediction.",
        "",
        "Return the result in exactly this JSON structure:",
        "",
        ANALYSIS_SKELETON,
        "",
        JSON_ONLY,
    ]
    return "\n".join(lines)


def build_chat_prompt(message: str, context: Optional[AnalysisResponse]) -> str:
    context_json = json.dumps(context.model_dump(mode="json"), ensure_ascii=False) if context else "null"
    return "\n".join([
        "You are an expert YouTube content consultant.",
        "The user has the following video analysis context:",
        context_json,
        "",
        f'User request: "{message}"',
        "",
        "Provide a helpful response to refine the strategy.",
        "If the user asks for changes to the titles, description or tags, put the full updated "
        "analysis object (same structure as the context) in \"updatedAnalysis\"; otherwise leave it null.",
        "",
        "Return JSON:",
        CHAT_SKELETON,
        "",
        JSON_ONLY,
    ])


def build_compare_prompt(user_video: AnalysisResponse, competitor: Optional[CompetitorMetadata]) -> str:
    competitor_text = (
        json.dumps(competitor.model_dump(mode="json"), ensure_ascii=False) if competitor else GENERAL_BENCHMARK
    )
    return "\n".join([
        "Act as a YouTube performance analyst. Compare the following two videos:",
        "",
        "YOUR VIDEO:",
        json.dumps(user_video.model_dump(mode="json"), ensure_ascii=False),
        "",
        "COMPETITOR VIDEO:",
        competitor_text,
        "",
        "Provide a benchmarking report: score from 0 to 100, what the user did better (strength), "
        "what the competitor does better (weakness), a specific action to beat the competitor "
        "(recommendation) and an unfilled need in this niche (marketGap).",
        "",
        "Return JSON:",
        COMPARE_SKELETON,
        "",
        JSON_ONLY,
    ])
