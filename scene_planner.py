# ABOUTME: Hybrid scene planner: deterministic chunking plus advisory semantic labels from an LLM
# ABOUTME: Validates and repairs oracle output field by field; falls back to defaults on any failure
from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Protocol

from chunker import split_into_chunks, validate_chunks
from sentence_splitter import normalize_whitespace

logger = logging.getLogger("reading-companion.planner")

ORACLE_TIMEOUT_SECS = 30.0
MAX_VISUAL_QUERIES = 3
FALLBACK_QUERY_WORDS = 5
NEW_SCENE_CONFIDENCE = 0.8
CONTINUED_SCENE_CONFIDENCE = 0.2

SEMANTIC_LABELS = (
    "counting",
    "explaining",
    "arguing",
    "questioning",
    "emphasizing",
    "comparing",
    "listing",
    "storytelling",
    "describing",
    "concluding",
    "transitioning",
    "emotional_positive",  # joy, excitement, pride
    "emotional_negative",  # sadness, fear, anger, embarrassment
    "neutral",
    "dramatic",
    "humorous",
    "warning",
    "instructing",
)
PACES = ("slow", "normal", "fast")

CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

INSTRUCTIONS = """You are a visual scene planner for a reading app that creates a video-like experience.

You will receive a list of TEXT CHUNKS (already split). Analyze each chunk and decide:

1. SCENE ASSIGNMENT (sceneId):
   - Chunks with the same sceneId share the same visual
   - Start a NEW scene (different sceneId) when the actor/subject, action, emotion,
     setting, or topic clearly changes
   - CONTINUE the scene (same sceneId) when the same actor continues, the same idea is
     elaborated, or the same scene is described from another angle
   - When uncertain: PREFER continuing the current scene

2. IS NEW SCENE (isNewScene):
   - true: this chunk starts a new mental scene; false: it continues the previous one
   - The first chunk is ALWAYS isNewScene: true

3. SEMANTIC LABEL (semanticLabel), choose ONE of:
   {labels}

4. VISUAL CHANGE CONFIDENCE (visualChangeConfidence):
   - 0.9-1.0: definite scene change needed
   - 0.6-0.8: likely scene change
   - 0.3-0.5: uncertain
   - 0.0-0.2: almost certainly the same scene

5. DISPLAY STYLE (displayStyle): "visual" for most content, "text_only" for very abstract concepts

6. VISUAL TYPE (visualType): "gif" for action, emotion, dynamic content; "image" for facts,
   objects, places, calm content; null if displayStyle is "text_only"

7. VISUAL QUERIES (visualQueries): 1-3 search queries (3-10 words each) for GIF/image search,
   ONLY for chunks where isNewScene is true; [] for chunks continuing a scene

8. PACE: "slow" for important, emotional, complex content; "normal" for regular content;
   "fast" for quick facts, lists, transitions

OUTPUT FORMAT - a JSON array with one object per chunk:
[
  {{"index": 0, "sceneId": 1, "isNewScene": true, "semanticLabel": "explaining",
   "visualChangeConfidence": 0.95, "displayStyle": "visual", "visualType": "gif",
   "visualQueries": ["teacher explaining concept", "person at whiteboard"], "pace": "normal"}},
  {{"index": 1, "sceneId": 1, "isNewScene": false, "semanticLabel": "explaining",
   "visualChangeConfidence": 0.1, "displayStyle": "visual", "visualType": "gif",
   "visualQueries": [], "pace": "normal"}}
]

RULES:
- Return EXACTLY one object per input chunk
- Index must match the chunk's position (0, 1, 2, ...)
- DO NOT alter or include the chunk text in the output
- Output valid JSON only. No markdown, no comments."""


class PlanningError(Exception):
    """A paragraph could not be planned at all."""


class EmptyInput(PlanningError):
    pass


class NoChunksProduced(PlanningError):
    pass


class SemanticOracle(Protocol):
    """External semantic-labeling service. May raise, hang, or return garbage."""

    async def generate(self, prompt: str) -> str: ...


@dataclass
class ScenePlan:
    index: int
    chunk_text: str
    scene_id: int
    is_new_scene: bool
    semantic_label: str
    visual_change_confidence: float
    display_style: str
    visual_type: str | None
    visual_queries: list[str] = field(default_factory=list)
    pace: str = "normal"

    def to_dict(self) -> dict:
        """Serialize with the camelCase keys used on the wire."""
        return {
            "index": self.index,
            "chunkText": self.chunk_text,
            "sceneId": self.scene_id,
            "isNewScene": self.is_new_scene,
            "semanticLabel": self.semantic_label,
            "visualChangeConfidence": self.visual_change_confidence,
            "displayStyle": self.display_style,
            "visualType": self.visual_type,
            "visualQueries": list(self.visual_queries),
            "pace": self.pace,
        }


class _SceneState(NamedTuple):
    """Accumulator threaded through the single forward pass."""
    last_scene_id: int
    seen_scene_ids: frozenset[int]


def build_prompt(chunks: list[str]) -> str:
    """Embed the indexed chunk list in the instruction contract."""
    instructions = INSTRUCTIONS.format(labels=", ".join(SEMANTIC_LABELS))
    listing = "\n".join(f'[{i}] "{chunk}"' for i, chunk in enumerate(chunks))
    return (
        f"{instructions}\n\nTEXT CHUNKS TO ANALYZE:\n\n{listing}\n\n"
        f"Return JSON array with semantic analysis for each chunk (index 0 to {len(chunks) - 1})."
    )


def parse_oracle_response(text: str, expected: int) -> list[Any] | None:
    """Extract the per-chunk array from free-form oracle text.

    Returns None when the response is unusable as a whole: not JSON, not an
    array, or not exactly one element per chunk.
    """
    cleaned = CODE_FENCE.sub("", text.strip()).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start = cleaned.find("[")
        end = cleaned.rfind("]") + 1
        if start == -1 or end <= start:
            logger.warning("Oracle response is not JSON: %.200s", text)
            return None
        try:
            data = json.loads(cleaned[start:end])
        except json.JSONDecodeError:
            logger.warning("Oracle response is not JSON: %.200s", text)
            return None

    if not isinstance(data, list):
        logger.warning("Oracle response is not an array (%s), using defaults", type(data).__name__)
        return None
    if len(data) != expected:
        logger.warning("Oracle returned %d plans for %d chunks, using defaults", len(data), expected)
        return None
    return data


async def _ask_oracle(oracle: SemanticOracle | None, chunks: list[str], timeout: float) -> list[Any] | None:
    """One bounded oracle call. Every failure is absorbed and reported as None."""
    if oracle is None:
        logger.warning("No semantic oracle configured, using default scene plans")
        return None

    prompt = build_prompt(chunks)
    try:
        text = await asyncio.wait_for(oracle.generate(prompt), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Semantic oracle timed out after %.0fs, using defaults", timeout)
        return None
    except Exception as e:
        logger.warning("Semantic oracle failed, using defaults: %s", e)
        return None

    if not isinstance(text, str):
        logger.warning("Semantic oracle returned %s instead of text, using defaults", type(text).__name__)
        return None
    return parse_oracle_response(text, len(chunks))


def _valid_scene_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value >= 1:
        return value
    return None


def _valid_confidence(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        return None
    return float(value)


def _valid_queries(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    queries = [q.strip() for q in value if isinstance(q, str) and q.strip()]
    return queries[:MAX_VISUAL_QUERIES]


def _fallback_query(chunk_text: str) -> str:
    return " ".join(chunk_text.split()[:FALLBACK_QUERY_WORDS])


def _resolve_chunk(
    index: int,
    chunk_text: str,
    raw: Any,
    state: _SceneState,
) -> tuple[ScenePlan, _SceneState]:
    """Build one chunk's plan from (possibly absent) oracle data and the running state."""
    raw = raw if isinstance(raw, dict) else {}

    # Scene assignment
    scene_id = _valid_scene_id(raw.get("sceneId"))
    if scene_id is None:
        scene_id = 1 if index == 0 else state.last_scene_id

    is_new = raw.get("isNewScene")
    if not isinstance(is_new, bool):
        is_new = scene_id not in state.seen_scene_ids

    if index == 0:
        scene_id, is_new = 1, True

    # Consistency repair: new scenes move forward, continuations inherit
    if index > 0:
        if is_new and scene_id <= state.last_scene_id:
            scene_id = state.last_scene_id + 1
        if not is_new and scene_id != state.last_scene_id:
            scene_id = state.last_scene_id

    label = raw.get("semanticLabel")
    if label not in SEMANTIC_LABELS:
        label = "neutral"

    confidence = _valid_confidence(raw.get("visualChangeConfidence"))
    if confidence is None:
        confidence = NEW_SCENE_CONFIDENCE if is_new else CONTINUED_SCENE_CONFIDENCE

    display_style = "text_only" if raw.get("displayStyle") == "text_only" else "visual"
    if display_style == "visual":
        visual_type = "image" if raw.get("visualType") == "image" else "gif"
    else:
        visual_type = None

    pace = raw.get("pace")
    if pace not in PACES:
        pace = "normal"

    # Visuals are fetched once per scene, at its first chunk
    queries = _valid_queries(raw.get("visualQueries"))
    if not is_new or display_style != "visual":
        queries = []
    elif not queries:
        queries = [_fallback_query(chunk_text)]

    plan = ScenePlan(
        index=index,
        chunk_text=chunk_text,
        scene_id=scene_id,
        is_new_scene=is_new,
        semantic_label=label,
        visual_change_confidence=confidence,
        display_style=display_style,
        visual_type=visual_type,
        visual_queries=queries,
        pace=pace,
    )
    return plan, _SceneState(scene_id, state.seen_scene_ids | {scene_id})


def resolve_plans(chunks: list[str], oracle_plans: list[Any] | None) -> list[ScenePlan]:
    """Fold the chunk list into a complete, invariant-respecting plan sequence."""
    state = _SceneState(last_scene_id=0, seen_scene_ids=frozenset())
    plans: list[ScenePlan] = []
    for i, chunk_text in enumerate(chunks):
        raw = oracle_plans[i] if oracle_plans is not None else None
        plan, state = _resolve_chunk(i, chunk_text, raw, state)
        plans.append(plan)
    return plans


async def plan_paragraph(
    paragraph: str,
    oracle: SemanticOracle | None,
    timeout: float = ORACLE_TIMEOUT_SECS,
) -> list[ScenePlan]:
    """Chunk a paragraph and attach a scene plan to every chunk.

    Raises EmptyInput / NoChunksProduced; oracle trouble never propagates.
    """
    if not paragraph or not paragraph.strip():
        raise EmptyInput("Paragraph cannot be empty")

    normalized = normalize_whitespace(paragraph)
    chunks = split_into_chunks(normalized)
    if not chunks:
        raise NoChunksProduced("No chunks produced from paragraph")

    if not validate_chunks(normalized, chunks):
        logger.warning("Chunks do not reconstruct the original text: %r vs %r",
                       normalized, " ".join(chunks))

    oracle_plans = await _ask_oracle(oracle, chunks, timeout)
    plans = resolve_plans(chunks, oracle_plans)
    logger.info("Planned %d chunks into %d scenes (oracle=%s)",
                len(plans), len({p.scene_id for p in plans}),
                "ok" if oracle_plans is not None else "defaults")
    return plans


async def plan_paragraphs(
    paragraphs: list[str],
    oracle: SemanticOracle | None,
    timeout: float = ORACLE_TIMEOUT_SECS,
) -> list[list[ScenePlan] | PlanningError]:
    """Plan independent paragraphs concurrently, one oracle call each.

    A paragraph that cannot be planned yields its PlanningError in place
    of a plan list; the others are unaffected.
    """
    results = await asyncio.gather(
        *(plan_paragraph(p, oracle, timeout) for p in paragraphs),
        return_exceptions=True,
    )
    for position, result in enumerate(results):
        if isinstance(result, PlanningError):
            logger.warning("Paragraph %d not planned: %s", position, result)
        elif isinstance(result, BaseException):
            raise result
    return list(results)
