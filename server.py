# ABOUTME: FastAPI server for the reading companion: paragraphs, scene plans, and paragraph assets
# ABOUTME: Proxies Gemini, Google TTS, Giphy and Unsplash; degrades per collaborator, never on chunking
from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

import config
from assets import build_paragraph_assets
from gemini_client import GeminiClient
from scene_planner import PlanningError, SemanticOracle, plan_paragraph, plan_paragraphs
from text_processor import TextProcessingError, process_text
from tts_client import TTSClient

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("reading-companion")

app = FastAPI(title="Reading Companion API", version="0.1.0")


class ProcessTextRequest(BaseModel):
    text: str | None = None


class VisualPlanRequest(BaseModel):
    paragraph: str | None = None


class VisualPlansRequest(BaseModel):
    paragraphs: list[str] | None = None


class ParagraphAssetsRequest(BaseModel):
    paragraphText: str | None = None
    paragraphId: str = ""


async def get_oracle() -> AsyncIterator[SemanticOracle | None]:
    """Gemini oracle for the request, or None when no key is configured."""
    if not config.GEMINI_API_KEY:
        yield None
        return
    client = GeminiClient()
    try:
        yield client
    finally:
        await client.close()


async def get_tts() -> AsyncIterator[TTSClient | None]:
    if not config.GOOGLE_CLOUD_TTS_API_KEY:
        yield None
        return
    client = TTSClient()
    try:
        yield client
    finally:
        await client.close()


@app.on_event("startup")
async def startup():
    config.CACHE_DIR.mkdir(parents=True, exist_ok=True)
    logger.info("Reading Companion API started on port %d", config.PORT)


@app.get("/health")
async def health():
    """Service health + which collaborators are configured."""
    return {
        "status": "ok",
        "collaborators": {
            "gemini": bool(config.GEMINI_API_KEY),
            "tts": bool(config.GOOGLE_CLOUD_TTS_API_KEY),
            "giphy": bool(config.GIPHY_API_KEY),
            "unsplash": bool(config.UNSPLASH_ACCESS_KEY),
        },
    }


@app.post("/process-text")
async def process_text_endpoint(body: ProcessTextRequest):
    """Split pasted text into paragraphs."""
    if not body.text:
        raise HTTPException(400, "Text is required and must be a string")
    try:
        paragraphs = process_text(body.text)
    except TextProcessingError as e:
        raise HTTPException(400, str(e))
    return {"paragraphs": [p.to_dict() for p in paragraphs]}


@app.post("/visual-plan")
async def visual_plan(body: VisualPlanRequest, oracle: SemanticOracle | None = Depends(get_oracle)):
    """Chunk a paragraph and plan its scenes."""
    if body.paragraph is None:
        raise HTTPException(400, "Paragraph is required and must be a string")
    try:
        plans = await plan_paragraph(body.paragraph, oracle)
    except PlanningError as e:
        raise HTTPException(400, str(e))
    return {"chunkPlans": [p.to_dict() for p in plans]}


@app.post("/visual-plans")
async def visual_plans(body: VisualPlansRequest, oracle: SemanticOracle | None = Depends(get_oracle)):
    """Plan several paragraphs concurrently; failures are reported per paragraph."""
    if not body.paragraphs:
        raise HTTPException(400, "Paragraphs are required and must be a list of strings")
    results = await plan_paragraphs(body.paragraphs, oracle)
    return {"results": [
        {"error": str(r)} if isinstance(r, PlanningError) else {"chunkPlans": [p.to_dict() for p in r]}
        for r in results
    ]}


@app.post("/paragraph-assets")
async def paragraph_assets(
    body: ParagraphAssetsRequest,
    oracle: SemanticOracle | None = Depends(get_oracle),
    tts: TTSClient | None = Depends(get_tts),
):
    """Plan, fetch scene visuals, and narrate one paragraph."""
    if not body.paragraphText:
        raise HTTPException(400, "Paragraph text is required")
    try:
        assets = await build_paragraph_assets(
            body.paragraphId,
            body.paragraphText,
            oracle,
            tts=tts,
            giphy_key=config.GIPHY_API_KEY,
            unsplash_key=config.UNSPLASH_ACCESS_KEY,
        )
    except Exception as e:
        logger.exception("Paragraph %s failed: %s", body.paragraphId, e)
        raise HTTPException(500, "Failed to fetch paragraph assets")
    return {"assets": assets}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
