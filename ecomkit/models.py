from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .errors import InvalidRequestError


# Supported pack sizes, smallest first.
PACK_SIZES: Tuple[int, ...] = (5, 7, 10)

AuditReport = str
ShotStrategy = List[str]

FALLBACK_AUDIT: AuditReport = "standard geometry, matte material"


class GenerationMode(str, Enum):
    OBJECT = "product"
    HUMAN_MODEL = "apparel"


class AssetRole(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    MODEL = "model"


@dataclass(frozen=True)
class SourceAsset:
    data: bytes = field(repr=False)
    media_type: str
    role: AssetRole = AssetRole.PRIMARY


@dataclass(frozen=True)
class TalentProfile:
    """
    Description of an AI-generated human model, used by human-model jobs
    that do not upload a model reference photo.
    """

    gender: str
    ethnicity: str
    skin_tone: str = ""
    body_type: str = ""
    age: str = "Young Adult"

    def describe(self) -> str:
        parts = [self.gender, self.age, f"{self.ethnicity} ethnicity"]
        if self.skin_tone:
            parts.append(f"{self.skin_tone} skin tone")
        if self.body_type:
            parts.append(f"{self.body_type} body build")
        return ", ".join(p for p in parts if p)


@dataclass(frozen=True)
class BrandOverlay:
    """
    Palette and tone hints from the active brand kit.

    Values are injected verbatim into render prompts; nothing here is
    validated.
    """

    name: str = ""
    palette: Tuple[str, ...] = ()
    tone: str = ""
    negative_prompt: str = ""


@dataclass(frozen=True)
class GenerationRequest:
    mode: GenerationMode
    primary: SourceAsset
    pack_size: int
    category: str
    style: str
    secondary: Tuple[SourceAsset, ...] = ()
    model_reference: Optional[SourceAsset] = None
    talent: Optional[TalentProfile] = None
    brand: Optional[BrandOverlay] = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.mode, GenerationMode):
            raise InvalidRequestError(f"Unsupported generation mode: {self.mode!r}")
        if self.pack_size not in PACK_SIZES:
            raise InvalidRequestError(
                f"Unsupported pack size {self.pack_size!r}; expected one of {PACK_SIZES}"
            )
        if self.primary is None or self.primary.role is not AssetRole.PRIMARY:
            raise InvalidRequestError("A primary source asset is required.")
        for asset in self.secondary:
            if asset.role is not AssetRole.SECONDARY:
                raise InvalidRequestError(
                    f"Secondary assets must carry the secondary role, got {asset.role.value!r}"
                )
        if not (self.category or "").strip():
            raise InvalidRequestError("A category label is required.")
        if not (self.style or "").strip():
            raise InvalidRequestError("A style label is required.")

        if self.mode is GenerationMode.HUMAN_MODEL:
            if self.model_reference is not None:
                if self.model_reference.role is not AssetRole.MODEL:
                    raise InvalidRequestError("The model reference must carry the model role.")
            elif not (self.talent and self.talent.gender and self.talent.ethnicity):
                raise InvalidRequestError(
                    "Human-model jobs need a model reference photo or a talent "
                    "profile with gender and ethnicity."
                )
        elif self.model_reference is not None:
            raise InvalidRequestError("Object jobs do not accept a model reference.")

    def source_assets(self) -> Tuple[SourceAsset, ...]:
        """Primary first, then secondary references, then the model reference."""
        assets = (self.primary,) + tuple(self.secondary)
        if self.model_reference is not None:
            assets += (self.model_reference,)
        return assets


@dataclass(frozen=True)
class RenderTask:
    index: int
    description: str
    assets: Tuple[SourceAsset, ...]
    audit: AuditReport
    mode: GenerationMode
    category: str
    style: str
    talent: Optional[TalentProfile] = None
    brand: Optional[BrandOverlay] = None


@dataclass(frozen=True)
class TaskFailure:
    index: int
    description: str
    reason: str


@dataclass
class BatchResult:
    """
    Images that rendered successfully, in the order of their task index.

    Failed tasks are absent from `images`; `failures` records why, for
    callers that want more than the list length.
    """

    images: List[bytes]
    requested: int
    failures: List[TaskFailure] = field(default_factory=list)
    strategy: List[str] = field(default_factory=list)
    audit: AuditReport = FALLBACK_AUDIT
    planner_fallback: bool = False

    @property
    def delivered(self) -> int:
        return len(self.images)

    @property
    def is_empty(self) -> bool:
        return not self.images

    @property
    def is_partial(self) -> bool:
        return 0 < len(self.images) < self.requested
