"""End-to-end pipeline tests against an in-memory inference service."""

import asyncio
import io
import json

import pytest
from PIL import Image

from ecomkit.core import FALLBACK_SHOTS, KitPipeline, fallback_shot, load_request, pad_strategy, parse_mode
from ecomkit.errors import InferenceError, InvalidRequestError, NoImageProducedError
from ecomkit.models import FALLBACK_AUDIT, PACK_SIZES, AssetRole, GenerationMode, SourceAsset
from fakes import FakeInferenceClient, image_bytes, plan_json, shot_of


def run(pipeline, request):
    return asyncio.run(pipeline.run(request))


@pytest.mark.parametrize("pack_size", PACK_SIZES)
@pytest.mark.parametrize("planned", [0, 1, 4])
def test_pad_strategy_always_matches_pack_size(pack_size, planned):
    shots = [f"planned {i}" for i in range(planned)]

    strategy = pad_strategy(shots, pack_size, GenerationMode.OBJECT)

    assert len(strategy) == pack_size
    assert strategy[:planned] == shots
    assert strategy[planned:] == [fallback_shot(i, GenerationMode.OBJECT) for i in range(planned, pack_size)]


def test_fallback_shots_are_indexed_and_deterministic():
    base = FALLBACK_SHOTS[GenerationMode.HUMAN_MODEL]
    assert fallback_shot(0, GenerationMode.HUMAN_MODEL) == f"{base[0]} (variation 1)"
    assert fallback_shot(6, GenerationMode.HUMAN_MODEL) == f"{base[1]} (variation 7)"
    strategy = pad_strategy([], 10, GenerationMode.OBJECT)
    assert len(set(strategy)) == 10


@pytest.mark.parametrize("pack_size", PACK_SIZES)
def test_planned_strategy_is_rendered_in_order(make_request, pack_size):
    client = FakeInferenceClient(plan=plan_json(pack_size))

    result = run(KitPipeline(client, concurrency_limit=3), make_request(pack_size=pack_size))

    expected = [f"planned shot {i}" for i in range(pack_size)]
    assert result.strategy == expected
    assert result.images == [s.encode() for s in expected]
    assert result.requested == pack_size
    assert not result.planner_fallback
    assert len(client.image_calls) == pack_size


@pytest.mark.parametrize("pack_size", PACK_SIZES)
def test_empty_plan_still_renders_placeholders(make_request, pack_size):
    client = FakeInferenceClient(plan="I cannot help with that.")

    result = run(KitPipeline(client), make_request(pack_size=pack_size))

    assert result.planner_fallback
    assert len(result.strategy) == pack_size
    assert result.strategy == pad_strategy([], pack_size, GenerationMode.OBJECT)
    assert result.delivered == pack_size


def test_short_plan_is_replaced_by_placeholders(make_request):
    client = FakeInferenceClient(plan=plan_json(3))

    result = run(KitPipeline(client), make_request(pack_size=7))

    assert result.planner_fallback
    assert result.strategy == pad_strategy([], 7, GenerationMode.OBJECT)


def test_audit_failure_is_not_fatal(make_request):
    client = FakeInferenceClient(audit=InferenceError("vision model down"), plan=plan_json(5))

    result = run(KitPipeline(client), make_request())

    assert result.audit == FALLBACK_AUDIT
    assert result.delivered >= 1
    assert all(FALLBACK_AUDIT in prompt for prompt, _ in client.image_calls)


def test_every_render_carries_the_audit(make_request):
    client = FakeInferenceClient(audit="Amber glass jar, gold lid, 'LUMA' label", plan=plan_json(5))

    run(KitPipeline(client), make_request())

    assert all("AUDIT: Amber glass jar, gold lid, 'LUMA' label" in p for p, _ in client.image_calls)


def test_partial_failure_returns_short_ordered_list(make_request):
    def render(prompt):
        shot = shot_of(prompt)
        if shot.endswith(("1", "3")):
            raise NoImageProducedError(f"nothing for {shot}")
        return shot.encode()

    client = FakeInferenceClient(plan=plan_json(5), render=render)

    result = run(KitPipeline(client, concurrency_limit=2), make_request())

    assert result.images == [b"planned shot 0", b"planned shot 2", b"planned shot 4"]
    assert result.is_partial
    assert [f.index for f in result.failures] == [1, 3]


def test_total_render_failure_returns_empty_result(make_request):
    def render(prompt):
        raise InferenceError("quota exceeded")

    client = FakeInferenceClient(plan=plan_json(10), render=render)

    result = run(KitPipeline(client), make_request(pack_size=10))

    assert result.images == []
    assert result.is_empty
    assert len(result.failures) == 10


def test_assets_are_normalized_before_inference(make_request):
    big = SourceAsset(data=image_bytes(3000, 2000), media_type="image/png", role=AssetRole.PRIMARY)
    client = FakeInferenceClient(plan=plan_json(5))

    run(KitPipeline(client, max_edge=600), make_request(primary=big))

    audited = client.text_calls[0][1][0]
    rendered = client.image_calls[0][1][0]
    with Image.open(io.BytesIO(audited.data)) as img:
        assert img.size == (600, 400)
    assert audited.media_type == "image/jpeg"
    assert rendered == audited


def test_run_sync(make_request):
    client = FakeInferenceClient(plan=plan_json(5))
    assert KitPipeline(client).run_sync(make_request()).delivered == 5


def test_parse_mode():
    assert parse_mode("product") is GenerationMode.OBJECT
    assert parse_mode("APPAREL") is GenerationMode.HUMAN_MODEL
    assert parse_mode("human_model") is GenerationMode.HUMAN_MODEL
    with pytest.raises(InvalidRequestError):
        parse_mode("video")


def write_job(tmp_path, **job):
    path = tmp_path / "summer-jacket.json"
    path.write_text(json.dumps(job), encoding="utf-8")
    return path


def test_load_request_from_job_file(tmp_path):
    (tmp_path / "jacket.png").write_bytes(image_bytes(20, 20))
    (tmp_path / "jacket_back.png").write_bytes(image_bytes(20, 20))
    path = write_job(
        tmp_path,
        mode="apparel",
        pack_size=7,
        category="Denim jacket",
        vibe="Lifestyle",
        primary="jacket.png",
        secondary="jacket_back.png",
        talent={"gender": "male", "ethnicity": "Japanese", "body_type": "slim"},
        brand={"company_name": "Indigo Co", "colors": {"primary": "#112233", "accent": "#FFCC00"}, "tone_of_voice": "calm"},
    )

    request = load_request(path)

    assert request.mode is GenerationMode.HUMAN_MODEL
    assert request.pack_size == 7
    assert request.style == "Lifestyle"
    assert request.primary.role is AssetRole.PRIMARY
    assert [a.role for a in request.secondary] == [AssetRole.SECONDARY]
    assert request.talent.ethnicity == "Japanese"
    assert request.brand.name == "Indigo Co"
    assert request.brand.palette == ("#112233", "#FFCC00")
    assert request.brand.tone == "calm"


def test_load_request_rejects_missing_file_instead_of_a_lookalike(tmp_path):
    (tmp_path / "jacket_back.png").write_bytes(image_bytes(20, 20))

    with pytest.raises(InvalidRequestError, match="jacket.png"):
        load_request(write_job(tmp_path, primary="jacket.png", category="Denim jacket", style="Lifestyle"))


def test_load_request_validates_before_any_work(tmp_path):
    (tmp_path / "mug.png").write_bytes(image_bytes(20, 20))

    with pytest.raises(InvalidRequestError):
        load_request(write_job(tmp_path, primary="mug.png", pack_size=6, category="Mug", style="Luxury"))
    with pytest.raises(InvalidRequestError):
        load_request(write_job(tmp_path, primary="cup.png", category="Mug", style="Luxury"))
    with pytest.raises(InvalidRequestError):
        load_request(write_job(tmp_path, category="Mug", style="Luxury"))
