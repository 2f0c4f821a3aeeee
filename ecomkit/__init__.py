"""
Batch e-commerce kit generation.

Modules:
- core: pipeline orchestration and job-file loading
- assets: source asset loading & normalization
- inference: inference client contract and the LangChain/Replicate adapter
- audit: forensic identity audit of the primary asset
- planner: shot strategy planning
- render: render prompt assembly and the production renderer
- executor: bounded-concurrency batch executor
- pricing: cost policy for finished batches
- config: environment-driven settings
"""

from .core import KitPipeline, load_request
from .errors import InferenceError, InvalidRequestError, KitError, NoImageProducedError
from .models import (
    PACK_SIZES,
    AssetRole,
    BatchResult,
    BrandOverlay,
    GenerationMode,
    GenerationRequest,
    SourceAsset,
    TalentProfile,
)

__all__ = [
    "PACK_SIZES",
    "AssetRole",
    "BatchResult",
    "BrandOverlay",
    "GenerationMode",
    "GenerationRequest",
    "InferenceError",
    "InvalidRequestError",
    "KitError",
    "KitPipeline",
    "NoImageProducedError",
    "SourceAsset",
    "TalentProfile",
    "load_request",
]
