import io
import logging
from pathlib import Path
from typing import Dict, Optional

from PIL import Image, ImageOps

from .errors import InvalidRequestError
from .models import AssetRole, SourceAsset

logger = logging.getLogger(__name__)

MEDIA_TYPES: Dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}
IMAGE_EXTENSIONS = set(MEDIA_TYPES)

DEFAULT_MAX_EDGE = 1024
DEFAULT_QUALITY = 85


def normalize_asset(
    asset: SourceAsset,
    max_edge: int = DEFAULT_MAX_EDGE,
    quality: int = DEFAULT_QUALITY,
) -> SourceAsset:
    """
    Downsample an oversized image so its longer edge equals `max_edge`, and
    re-encode it as JPEG at `quality`.

    Images already within bounds are returned as-is. Any decode or encode
    error is logged and the original asset is passed through unchanged.
    """
    try:
        with Image.open(io.BytesIO(asset.data)) as raw:
            # Work on the image as displayed, not the sensor's pixel grid.
            img = ImageOps.exif_transpose(raw)
            width, height = img.size
            longest = max(width, height)
            if longest <= max_edge:
                return asset

            scale = max_edge / longest
            if width >= height:
                size = (max_edge, max(1, round(height * scale)))
            else:
                size = (max(1, round(width * scale)), max_edge)

            resized = img.resize(size, Image.LANCZOS)
            if resized.mode not in ("RGB", "L"):
                resized = resized.convert("RGB")

            buffer = io.BytesIO()
            resized.save(buffer, format="JPEG", quality=quality)
    except Exception as exc:
        logger.warning("Asset normalization failed, using original bytes: %s", exc)
        return asset

    logger.debug("Normalized %s asset from %sx%s to %sx%s", asset.role.value, width, height, *size)
    return SourceAsset(data=buffer.getvalue(), media_type="image/jpeg", role=asset.role)


def media_type_for(path: Path) -> str:
    media_type = MEDIA_TYPES.get(path.suffix.lower())
    if media_type is None:
        raise InvalidRequestError(
            f"Unsupported image type {path.suffix!r} for {path.name}; "
            f"expected one of {sorted(IMAGE_EXTENSIONS)}"
        )
    return media_type


def load_source_asset(path: Path, role: AssetRole = AssetRole.PRIMARY) -> SourceAsset:
    media_type = media_type_for(path)
    return SourceAsset(data=path.read_bytes(), media_type=media_type, role=role)


def find_asset(reference: str, assets_dir: Path) -> Optional[Path]:
    """
    Resolve an asset reference from a job file against the assets folder.

    Search heuristics (in order):
    - `reference` as a path relative to assets_dir (or absolute)
    - for a bare name without a file suffix only: the first image file
      whose stem contains the slugged reference

    A reference naming a file (e.g. "jacket.png") must exist exactly.
    """
    if not reference:
        return None

    candidate = Path(reference)
    if not candidate.is_absolute():
        candidate = assets_dir / reference
    if candidate.is_file():
        return candidate

    if Path(reference).suffix or not assets_dir.exists():
        return None

    slug = slugify(Path(reference).stem)
    for path in sorted(assets_dir.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in IMAGE_EXTENSIONS:
            continue
        if slug in slugify(path.stem):
            return path

    return None


def slugify(text: str) -> str:
    slug = "".join(ch.lower() if ch.isalnum() else "-" for ch in text)
    while "--" in slug:
        slug = slug.replace("--", "-")
    return slug.strip("-") or "item"
