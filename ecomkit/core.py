import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .assets import DEFAULT_MAX_EDGE, DEFAULT_QUALITY, find_asset, load_source_asset, normalize_asset
from .audit import ForensicAuditor
from .errors import InvalidRequestError
from .executor import DEFAULT_CONCURRENCY, BatchExecutor, ProgressFn
from .inference import InferenceClient
from .models import (
    AssetRole,
    BatchResult,
    BrandOverlay,
    GenerationMode,
    GenerationRequest,
    RenderTask,
    ShotStrategy,
    SourceAsset,
    TalentProfile,
)
from .planner import StrategyPlanner
from .render import ProductionRenderer

logger = logging.getLogger(__name__)


# Base shots used when the planner comes back short; cycled by position.
FALLBACK_SHOTS: Dict[GenerationMode, Tuple[str, ...]] = {
    GenerationMode.OBJECT: (
        "Hero front view, subject filling 85% of the canvas on a solid pure white background, perfect symmetry.",
        "Hero 45-degree angle on a solid pure white background with a soft natural contact shadow.",
        "Direct back view on a solid pure white background showing the rear details.",
        "Lifestyle shot of a person using the product in a natural environment.",
        "Extreme close-up macro of the material finish with shallow depth of field.",
    ),
    GenerationMode.HUMAN_MODEL: (
        "Full-body catalogue shot, model facing forward on a solid pure white background, hands clear of the garment.",
        "Editorial street-style shot with a blurred city background and a dynamic pose.",
        "Side profile, model turned 90 degrees on a solid pure white background to show fit and silhouette.",
        "Back view, model turned 180 degrees on a solid pure white background.",
        "Macro close-up of the fabric texture and stitching on the chest area.",
    ),
}


def fallback_shot(index: int, mode: GenerationMode) -> str:
    base = FALLBACK_SHOTS[mode]
    return f"{base[index % len(base)]} (variation {index + 1})"


def pad_strategy(planned: ShotStrategy, pack_size: int, mode: GenerationMode) -> ShotStrategy:
    """
    Return a strategy of exactly `pack_size` descriptions: planned shots
    first, deterministic placeholders for every missing position.
    """
    shots = list(planned[:pack_size])
    shots.extend(fallback_shot(i, mode) for i in range(len(shots), pack_size))
    return shots


class KitPipeline:
    """
    Orchestrates one kit generation job:
    - normalize the source assets
    - audit the primary asset into an identity contract
    - plan `pack_size` shots (padded with placeholders if the planner falls short)
    - render every shot on the batch executor

    Nothing here retries, charges or persists; callers decide what to do
    with the returned `BatchResult`.
    """

    def __init__(
        self,
        client: InferenceClient,
        concurrency_limit: int = DEFAULT_CONCURRENCY,
        max_edge: int = DEFAULT_MAX_EDGE,
        quality: int = DEFAULT_QUALITY,
        auditor: Optional[ForensicAuditor] = None,
        planner: Optional[StrategyPlanner] = None,
        renderer: Optional[ProductionRenderer] = None,
    ) -> None:
        self.max_edge = max_edge
        self.quality = quality
        self.auditor = auditor or ForensicAuditor(client)
        self.planner = planner or StrategyPlanner(client)
        self.renderer = renderer or ProductionRenderer(client)
        self.executor = BatchExecutor(self.renderer.render, concurrency_limit)

    @classmethod
    def from_settings(cls, settings: Any, client: InferenceClient) -> "KitPipeline":
        return cls(
            client,
            concurrency_limit=settings.concurrency_limit,
            max_edge=settings.max_edge,
            quality=settings.jpeg_quality,
        )

    async def run(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event] = None,
        on_progress: Optional[ProgressFn] = None,
    ) -> BatchResult:
        assets = tuple(self._normalize(asset) for asset in request.source_assets())
        primary = assets[0]

        logger.info("Auditing primary asset (%s job, pack of %d)", request.mode.value, request.pack_size)
        audit = await self.auditor.audit(primary)

        logger.info("Planning %d shot(s)", request.pack_size)
        planned = await self.planner.plan(audit, request)
        planner_fallback = len(planned) < request.pack_size
        if planner_fallback:
            logger.warning(
                "Planner delivered %d of %d shot(s); padding with placeholders",
                len(planned),
                request.pack_size,
            )
        strategy = pad_strategy(planned, request.pack_size, request.mode)

        tasks = [
            RenderTask(
                index=index,
                description=description,
                assets=assets,
                audit=audit,
                mode=request.mode,
                category=request.category,
                style=request.style,
                talent=request.talent,
                brand=request.brand,
            )
            for index, description in enumerate(strategy)
        ]
        outcome = await self.executor.execute(tasks, cancel_event=cancel_event, on_progress=on_progress)

        return BatchResult(
            images=outcome.images,
            requested=request.pack_size,
            failures=outcome.failures,
            strategy=strategy,
            audit=audit,
            planner_fallback=planner_fallback,
        )

    def run_sync(self, request: GenerationRequest) -> BatchResult:
        return asyncio.run(self.run(request))

    def _normalize(self, asset: SourceAsset) -> SourceAsset:
        return normalize_asset(asset, max_edge=self.max_edge, quality=self.quality)


def load_request(path: Path, assets_dir: Optional[Path] = None) -> GenerationRequest:
    """
    Build a `GenerationRequest` from a JSON job file. Asset references are
    resolved against `assets_dir` (defaults to the job file's folder).
    """
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    assets_dir = assets_dir or path.parent

    def asset(reference: str, role: AssetRole) -> SourceAsset:
        found = find_asset(reference, assets_dir)
        if found is None:
            raise InvalidRequestError(f"Asset {reference!r} not found under {assets_dir}")
        return load_source_asset(found, role)

    primary_ref = data.get("primary")
    if not primary_ref:
        raise InvalidRequestError("Job file is missing the 'primary' asset.")

    secondary_refs: List[str] = data.get("secondary") or []
    if isinstance(secondary_refs, str):
        secondary_refs = [secondary_refs]

    model_ref = data.get("model_reference")
    talent = data.get("talent")
    brand = data.get("brand")

    try:
        pack_size = int(data.get("pack_size", 5))
    except (TypeError, ValueError):
        raise InvalidRequestError(f"Invalid pack size {data.get('pack_size')!r}")

    return GenerationRequest(
        mode=parse_mode(data.get("mode", GenerationMode.OBJECT.value)),
        primary=asset(primary_ref, AssetRole.PRIMARY),
        pack_size=pack_size,
        category=str(data.get("category") or ""),
        style=str(data.get("style") or data.get("vibe") or ""),
        secondary=tuple(asset(ref, AssetRole.SECONDARY) for ref in secondary_refs),
        model_reference=asset(model_ref, AssetRole.MODEL) if model_ref else None,
        talent=_talent_from_dict(talent) if talent else None,
        brand=_brand_from_dict(brand) if brand else None,
    )


def parse_mode(value: str) -> GenerationMode:
    raw = str(value).strip()
    for mode in GenerationMode:
        if raw.lower() in (mode.value, mode.name.lower()):
            return mode
    raise InvalidRequestError(
        f"Unsupported generation mode {value!r}; expected one of "
        f"{[m.value for m in GenerationMode]}"
    )


def _talent_from_dict(data: Dict[str, Any]) -> TalentProfile:
    return TalentProfile(
        gender=str(data.get("gender") or ""),
        ethnicity=str(data.get("ethnicity") or ""),
        skin_tone=str(data.get("skin_tone") or ""),
        body_type=str(data.get("body_type") or ""),
        age=str(data.get("age") or "Young Adult"),
    )


def _brand_from_dict(data: Dict[str, Any]) -> BrandOverlay:
    palette = data.get("palette")
    if palette is None:
        # Brand kits store colours as a role -> hex mapping.
        colors = data.get("colors") or {}
        palette = list(colors.values()) if isinstance(colors, dict) else colors
    return BrandOverlay(
        name=str(data.get("name") or data.get("company_name") or ""),
        palette=tuple(str(c) for c in palette or ()),
        tone=str(data.get("tone") or data.get("tone_of_voice") or ""),
        negative_prompt=str(data.get("negative_prompt") or ""),
    )
