# ABOUTME: Paragraph asset orchestrator: scene plan → per-scene visuals + narration audio
# ABOUTME: Each collaborator fails independently into the errors map; MD5-caches TTS audio
from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

import config
from keywords import extract_keywords
from scene_planner import PlanningError, ScenePlan, SemanticOracle, plan_paragraph
from sync_text import build_cues, generate_lrc
from tts_client import DEFAULT_VOICE, TTSClient, to_data_url
from visuals import VisualAsset, search_gifs, search_images

logger = logging.getLogger("reading-companion.assets")

TTS_TIMEOUT_SECS = 10.0
VISUAL_TIMEOUT_SECS = 10.0
QUERIES_PER_SCENE = 2
MAX_LEGACY_VISUALS = 3
FALLBACK_GIFS = 2
FALLBACK_IMAGES = 1


@dataclass
class SceneRequest:
    """One visual fetch for a run of chunks sharing a sceneId."""
    scene_id: int
    visual_type: str
    queries: list[str]


def group_scenes(plans: list[ScenePlan]) -> list[SceneRequest]:
    """One request per sceneId, from its first chunk that asks for a visual."""
    requests: dict[int, SceneRequest] = {}
    for plan in plans:
        if plan.scene_id in requests:
            continue
        if plan.display_style == "visual" and plan.visual_type and plan.visual_queries:
            requests[plan.scene_id] = SceneRequest(plan.scene_id, plan.visual_type, list(plan.visual_queries))
    return list(requests.values())


def _cache_key(text: str, voice: str) -> str:
    """MD5 hash for audio caching."""
    return hashlib.md5(f"{text}|{voice}".encode()).hexdigest()


def _get_cached(cache_dir: Path, key: str) -> bytes | None:
    path = cache_dir / f"{key}.mp3"
    if path.exists():
        return path.read_bytes()
    return None


def _save_cache(cache_dir: Path, key: str, audio: bytes):
    cache_dir.mkdir(parents=True, exist_ok=True)
    (cache_dir / f"{key}.mp3").write_bytes(audio)


async def narrate(text: str, tts: TTSClient, cache_dir: Path | None = None, voice: str = DEFAULT_VOICE) -> bytes:
    """Synthesize paragraph audio, reusing the on-disk cache when present."""
    cache_dir = cache_dir or config.CACHE_DIR
    key = _cache_key(text, voice)
    cached = _get_cached(cache_dir, key)
    if cached:
        logger.debug("Narration for %s from cache", key)
        return cached

    audio = await asyncio.wait_for(tts.synthesize(text, voice=voice), timeout=TTS_TIMEOUT_SECS)
    _save_cache(cache_dir, key, audio)
    return audio


async def fetch_scene_visual(
    request: SceneRequest,
    giphy_key: str | None,
    unsplash_key: str | None,
) -> list[VisualAsset]:
    """Try the scene's first queries in order; the first hit wins."""
    if request.visual_type == "gif" and giphy_key:
        search, key = search_gifs, giphy_key
    elif request.visual_type == "image" and unsplash_key:
        search, key = search_images, unsplash_key
    else:
        return []

    for query in request.queries[:QUERIES_PER_SCENE]:
        try:
            found = await asyncio.wait_for(search(query, key, 1), timeout=VISUAL_TIMEOUT_SECS)
        except Exception as e:
            logger.warning("Scene %d query %r failed: %s", request.scene_id, query, e)
            continue
        if found:
            return found[:1]
    return []


async def build_paragraph_assets(
    paragraph_id: str,
    text: str,
    oracle: SemanticOracle | None,
    tts: TTSClient | None = None,
    giphy_key: str | None = None,
    unsplash_key: str | None = None,
    cache_dir: Path | None = None,
) -> dict:
    """Assemble everything the reader needs to present one paragraph."""
    errors: dict[str, str] = {}
    keywords = extract_keywords(text)
    visuals: list[VisualAsset] = []
    scene_visuals: dict[int, list[VisualAsset]] = {}
    plans: list[ScenePlan] = []

    # 1. Scene plan
    try:
        plans = await plan_paragraph(text, oracle)
    except PlanningError as e:
        logger.warning("Paragraph %s: planning failed: %s", paragraph_id, e)
        errors["visualPlan"] = str(e)
    if oracle is None:
        errors.setdefault("visualPlan", "Gemini API key not configured")

    # 2. Scene visuals, fetched concurrently
    requests = group_scenes(plans)
    results = await asyncio.gather(*(fetch_scene_visual(r, giphy_key, unsplash_key) for r in requests))
    for request, found in zip(requests, results):
        if found:
            scene_visuals[request.scene_id] = found
            visuals.extend(found[:1])

    # 3. Keyword fallback when no scene produced a visual
    if not scene_visuals:
        query = " ".join(keywords[:3])
        if giphy_key:
            try:
                visuals.extend(await asyncio.wait_for(
                    search_gifs(query, giphy_key, FALLBACK_GIFS), timeout=VISUAL_TIMEOUT_SECS))
            except Exception as e:
                logger.warning("Paragraph %s: Giphy fallback failed: %s", paragraph_id, e)
                errors["giphy"] = str(e) or type(e).__name__
        else:
            errors["giphy"] = "Giphy API key not configured"

        if unsplash_key:
            try:
                visuals.extend(await asyncio.wait_for(
                    search_images(query, unsplash_key, FALLBACK_IMAGES), timeout=VISUAL_TIMEOUT_SECS))
            except Exception as e:
                logger.warning("Paragraph %s: Unsplash fallback failed: %s", paragraph_id, e)
                errors["unsplash"] = str(e) or type(e).__name__
        else:
            errors["unsplash"] = "Unsplash API key not configured"

    # 4. Narration
    audio_url = None
    if tts is not None and tts.api_key:
        try:
            audio = await narrate(text, tts, cache_dir)
            audio_url = to_data_url(audio)
        except Exception as e:
            logger.warning("Paragraph %s: TTS failed: %s", paragraph_id, e)
            errors["tts"] = str(e) or type(e).__name__
    else:
        errors["tts"] = "TTS API key not configured"

    cues = build_cues(plans)
    logger.info("Paragraph %s: %d chunks, %d scene visuals, audio=%s",
                paragraph_id, len(plans), len(scene_visuals), audio_url is not None)

    assets = {
        "paragraphId": paragraph_id,
        "audioUrl": audio_url,
        "visuals": [v.to_dict() for v in visuals[:MAX_LEGACY_VISUALS]],
        "keywords": keywords,
        "chunkPlans": [p.to_dict() for p in plans],
        "sceneVisuals": {str(sid): [v.to_dict() for v in found] for sid, found in scene_visuals.items()},
        "subtitleCues": [c.to_dict() for c in cues],
        "subtitlesLrc": generate_lrc(cues),
    }
    if errors:
        assets["errors"] = errors
    return assets
