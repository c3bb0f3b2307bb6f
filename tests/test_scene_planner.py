"""Tests for the hybrid scene planner."""

from __future__ import annotations

import logging

import pytest

from conftest import FailingOracle, HangingOracle, StaticOracle, oracle_json, plan_entry
from scene_planner import (
    SEMANTIC_LABELS,
    EmptyInput,
    NoChunksProduced,
    ScenePlan,
    build_prompt,
    parse_oracle_response,
    plan_paragraph,
    plan_paragraphs,
    resolve_plans,
)

THREE_CHUNKS = "The fox ran. The dog slept. The cat watched."


def assert_invariants(plans: list[ScenePlan], chunk_count: int) -> None:
    assert [p.index for p in plans] == list(range(chunk_count))
    assert plans[0].scene_id == 1 and plans[0].is_new_scene
    for prev, plan in zip(plans, plans[1:]):
        assert plan.scene_id >= prev.scene_id
        assert plan.is_new_scene == (plan.scene_id != prev.scene_id)
    for plan in plans:
        assert plan.semantic_label in SEMANTIC_LABELS
        assert 0.0 <= plan.visual_change_confidence <= 1.0
        assert plan.pace in ("slow", "normal", "fast")
        assert (plan.display_style == "text_only") == (plan.visual_type is None)
        assert len(plan.visual_queries) <= 3
        if not plan.is_new_scene:
            assert plan.visual_queries == []
        if plan.is_new_scene and plan.display_style == "visual":
            assert len(plan.visual_queries) >= 1


class TestInputErrors:
    async def test_empty_paragraph(self) -> None:
        with pytest.raises(EmptyInput):
            await plan_paragraph("   ", StaticOracle("[]"))

    async def test_no_chunks(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("scene_planner.split_into_chunks", lambda text: [])
        with pytest.raises(NoChunksProduced):
            await plan_paragraph("Something here.", StaticOracle("[]"))


class TestOracleFailures:
    async def test_timeout_falls_back_to_defaults(self, hanging_oracle: HangingOracle) -> None:
        plans = await plan_paragraph("X is here. Y follows next.", hanging_oracle, timeout=0.05)

        assert len(plans) == 2
        assert plans[0].scene_id == 1 and plans[0].is_new_scene
        assert plans[1].scene_id == 1 and not plans[1].is_new_scene
        assert hanging_oracle.cancelled
        assert_invariants(plans, 2)

    async def test_raising_oracle(self, failing_oracle: FailingOracle) -> None:
        plans = await plan_paragraph(THREE_CHUNKS, failing_oracle)
        assert failing_oracle.calls == 1
        assert_invariants(plans, 3)

    async def test_no_oracle(self) -> None:
        plans = await plan_paragraph(THREE_CHUNKS, None)
        assert_invariants(plans, 3)

    async def test_defaults(self, failing_oracle: FailingOracle) -> None:
        first, second, _ = await plan_paragraph(THREE_CHUNKS, failing_oracle)

        assert first.semantic_label == "neutral"
        assert first.display_style == "visual"
        assert first.visual_type == "gif"
        assert first.pace == "normal"
        assert first.visual_change_confidence == 0.8
        assert first.visual_queries == ["The fox ran."]
        assert second.visual_change_confidence == 0.2
        assert second.visual_queries == []

    @pytest.mark.parametrize("response", [
        "not json at all",
        '{"plans": []}',
        oracle_json([plan_entry(1, True)]),
        oracle_json([plan_entry(1, True)] * 4),
    ])
    async def test_unusable_response_is_discarded(self, response: str, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="reading-companion.planner"):
            plans = await plan_paragraph(THREE_CHUNKS, StaticOracle(response))

        assert caplog.records
        assert [p.scene_id for p in plans] == [1, 1, 1]
        assert all(p.semantic_label == "neutral" for p in plans)
        assert_invariants(plans, 3)


class TestValidResponse:
    async def test_fenced_response_is_used(self) -> None:
        oracle = StaticOracle(oracle_json([
            plan_entry(1, True),
            plan_entry(1, False),
            plan_entry(2, True, visualType="gif", visualQueries=["cat watching", "curious cat"]),
        ], fenced=True))

        plans = await plan_paragraph(THREE_CHUNKS, oracle)

        assert [p.scene_id for p in plans] == [1, 1, 2]
        assert [p.is_new_scene for p in plans] == [True, False, True]
        assert plans[0].visual_type == "image"
        assert plans[0].semantic_label == "storytelling"
        assert plans[0].pace == "slow"
        assert plans[2].visual_queries == ["cat watching", "curious cat"]
        assert [p.chunk_text for p in plans] == ["The fox ran.", "The dog slept.", "The cat watched."]

    async def test_prompt_lists_indexed_chunks(self) -> None:
        oracle = StaticOracle(oracle_json([plan_entry(1, True)] * 3))
        await plan_paragraph(THREE_CHUNKS, oracle)

        prompt = oracle.prompts[0]
        assert '[0] "The fox ran."' in prompt
        assert '[2] "The cat watched."' in prompt
        assert "index 0 to 2" in prompt
        assert "emotional_negative" in prompt

    async def test_concurrent_paragraphs(self) -> None:
        results = await plan_paragraphs(["One two three.", THREE_CHUNKS], None)
        assert [len(r) for r in results] == [1, 3]

    async def test_one_bad_paragraph_does_not_fail_the_batch(self) -> None:
        results = await plan_paragraphs(["", "One two three."], None)
        assert isinstance(results[0], EmptyInput)
        assert [p.chunk_text for p in results[1]] == ["One two three."]


class TestRepair:
    def test_scene_id_omitted(self) -> None:
        chunks = ["a b c", "d e f", "g h i"]
        missing = plan_entry(2, False)
        del missing["sceneId"]

        plans = resolve_plans(chunks, [plan_entry(1, True), plan_entry(2, True), missing])

        assert [p.scene_id for p in plans] == [1, 2, 2]
        assert plans[2].is_new_scene is False
        assert_invariants(plans, 3)

    def test_scene_id_and_flag_omitted_continues_scene(self) -> None:
        entry = plan_entry(9, True)
        del entry["sceneId"], entry["isNewScene"]

        plans = resolve_plans(["a", "b"], [plan_entry(1, True), entry])

        assert plans[1].scene_id == 1
        assert plans[1].is_new_scene is False

    def test_new_flag_without_new_id_bumps(self) -> None:
        plans = resolve_plans(["a", "b"], [plan_entry(1, True), plan_entry(1, True)])
        assert [p.scene_id for p in plans] == [1, 2]

    def test_new_flag_with_earlier_id_moves_forward(self) -> None:
        plans = resolve_plans(["a", "b", "c"], [plan_entry(1, True), plan_entry(3, True), plan_entry(2, True)])
        assert [p.scene_id for p in plans] == [1, 3, 4]

    def test_continuation_with_new_id_inherits(self) -> None:
        plans = resolve_plans(["a", "b"], [plan_entry(1, True), plan_entry(5, False, visualQueries=["x"])])
        assert plans[1].scene_id == 1
        assert plans[1].visual_queries == []

    def test_unseen_id_without_flag_is_new(self) -> None:
        entry = plan_entry(2, True)
        del entry["isNewScene"]
        plans = resolve_plans(["a", "b"], [plan_entry(1, True), entry])
        assert plans[1].is_new_scene and plans[1].scene_id == 2

    def test_first_chunk_is_forced_new(self) -> None:
        plans = resolve_plans(["a b c d e f g"], [plan_entry(7, False, visualQueries=[])])
        assert plans[0].scene_id == 1
        assert plans[0].is_new_scene
        assert plans[0].visual_queries == ["a b c d e"]

    def test_invalid_fields_default_individually(self) -> None:
        entry = {
            "sceneId": True,
            "isNewScene": "yes",
            "semanticLabel": "sarcastic",
            "visualChangeConfidence": 1.7,
            "displayStyle": "fullscreen",
            "visualType": "video",
            "visualQueries": [1, "first", None, "second", "third", "fourth"],
            "pace": "turbo",
        }
        plans = resolve_plans(["a", "b"], [plan_entry(1, True), entry])
        plan = plans[1]

        assert plan.scene_id == 1 and not plan.is_new_scene
        assert plan.semantic_label == "neutral"
        assert plan.visual_change_confidence == 0.2
        assert plan.display_style == "visual"
        assert plan.visual_type == "gif"
        assert plan.pace == "normal"
        assert plan.visual_queries == []

    def test_queries_are_filtered_and_capped(self) -> None:
        entry = plan_entry(1, True, visualQueries=[1, "first", None, "second", "third", "fourth"])
        plans = resolve_plans(["a"], [entry])
        assert plans[0].visual_queries == ["first", "second", "third"]

    def test_text_only_has_no_visual_type_or_queries(self) -> None:
        plans = resolve_plans(["a", "b"], [
            plan_entry(1, True),
            plan_entry(2, True, displayStyle="text_only", visualType="image", visualQueries=["q"]),
        ])
        assert plans[1].visual_type is None
        assert plans[1].visual_queries == []

    def test_non_object_entries(self) -> None:
        plans = resolve_plans(["a", "b", "c"], ["junk", None, 42])
        assert [p.scene_id for p in plans] == [1, 1, 1]
        assert_invariants(plans, 3)


class TestParseResponse:
    def test_plain_and_fenced(self) -> None:
        assert parse_oracle_response("[{}]", 1) == [{}]
        assert parse_oracle_response("```json\n[{}, {}]\n```", 2) == [{}, {}]
        assert parse_oracle_response("```\n[1]\n```", 1) == [1]

    def test_array_inside_prose(self) -> None:
        assert parse_oracle_response('Here you go:\n[{"sceneId": 1}]\nEnjoy!', 1) == [{"sceneId": 1}]

    def test_rejects(self) -> None:
        assert parse_oracle_response("nope", 1) is None
        assert parse_oracle_response('{"a": 1}', 1) is None
        assert parse_oracle_response("[1, 2]", 3) is None


def test_to_dict_uses_wire_keys() -> None:
    plan = resolve_plans(["Hello there friend."], None)[0]
    assert plan.to_dict() == {
        "index": 0,
        "chunkText": "Hello there friend.",
        "sceneId": 1,
        "isNewScene": True,
        "semanticLabel": "neutral",
        "visualChangeConfidence": 0.8,
        "displayStyle": "visual",
        "visualType": "gif",
        "visualQueries": ["Hello there friend."],
        "pace": "normal",
    }


def test_build_prompt_single_chunk() -> None:
    prompt = build_prompt(["alpha beta"])
    assert '[0] "alpha beta"' in prompt
    assert "index 0 to 0" in prompt
