# ABOUTME: Generates timed subtitle cues from chunk scene plans, scaled by reading pace
# ABOUTME: Renders cues as LRC lines for players that sync text to narration
from __future__ import annotations

from dataclasses import dataclass

from scene_planner import ScenePlan

MIN_CHUNK_MS = 2000
MS_PER_CHAR = 100
PACE_MULTIPLIERS = {"slow": 1.5, "normal": 1.0, "fast": 0.7}


@dataclass
class SubtitleCue:
    """A chunk's on-screen window."""
    index: int
    start_ms: float
    end_ms: float
    text: str
    scene_id: int

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "startMs": round(self.start_ms),
            "endMs": round(self.end_ms),
            "text": self.text,
            "sceneId": self.scene_id,
        }


def chunk_duration_ms(text: str, pace: str, playback_rate: float = 1.0) -> float:
    """Display time for one chunk: length-based, floored, scaled by pace."""
    base = max(MIN_CHUNK_MS, len(text) * MS_PER_CHAR)
    return base * PACE_MULTIPLIERS.get(pace, 1.0) / playback_rate


def build_cues(plans: list[ScenePlan], playback_rate: float = 1.0, offset_ms: float = 0.0) -> list[SubtitleCue]:
    """Lay chunks end to end starting at offset_ms."""
    cues: list[SubtitleCue] = []
    current = offset_ms
    for plan in plans:
        duration = chunk_duration_ms(plan.chunk_text, plan.pace, playback_rate)
        cues.append(SubtitleCue(
            index=plan.index,
            start_ms=current,
            end_ms=current + duration,
            text=plan.chunk_text,
            scene_id=plan.scene_id,
        ))
        current += duration
    return cues


def _format_timestamp(ms: float) -> str:
    """Format milliseconds as [mm:ss.xx] for LRC."""
    secs = ms / 1000
    minutes = int(secs // 60)
    remainder = secs % 60
    return f"[{minutes:02d}:{remainder:05.2f}]"


def generate_lrc(cues: list[SubtitleCue]) -> str:
    """Render cues as an LRC string."""
    lines = [f"{_format_timestamp(cue.start_ms)} {cue.text}" for cue in cues]
    return "\n".join(lines) + "\n" if lines else ""
