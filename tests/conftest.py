"""Shared stub oracles and fixtures."""

from __future__ import annotations

import asyncio
import json

import pytest


class StaticOracle:
    """Returns a fixed response and records the prompts it saw."""

    def __init__(self, response: str) -> None:
        self.response = response
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.response


class FailingOracle:
    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or RuntimeError("oracle unavailable")
        self.calls = 0

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        raise self.exc


class HangingOracle:
    """Never resolves; the planner's timeout must abandon it."""

    def __init__(self) -> None:
        self.cancelled = False

    async def generate(self, prompt: str) -> str:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return ""


def oracle_json(plans: list[dict], fenced: bool = False) -> str:
    body = json.dumps(plans)
    return f"```json\n{body}\n```" if fenced else body


def plan_entry(scene_id: int, new: bool, **overrides: object) -> dict:
    entry = {
        "sceneId": scene_id,
        "isNewScene": new,
        "semanticLabel": "storytelling",
        "visualChangeConfidence": 0.9 if new else 0.1,
        "displayStyle": "visual",
        "visualType": "image",
        "visualQueries": ["city street at night"] if new else [],
        "pace": "slow",
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def failing_oracle() -> FailingOracle:
    return FailingOracle()


@pytest.fixture
def hanging_oracle() -> HangingOracle:
    return HangingOracle()
