import logging
from typing import Dict, List

from .inference import InferenceClient
from .models import AssetRole, BrandOverlay, GenerationMode, RenderTask

logger = logging.getLogger(__name__)

ASSET_LABELS: Dict[AssetRole, str] = {
    AssetRole.PRIMARY: "MAIN PRODUCT REFERENCE",
    AssetRole.SECONDARY: "BACK VIEW REFERENCE",
    AssetRole.MODEL: "TARGET MODEL REFERENCE",
}

GLOBAL_REQUIREMENTS = """GLOBAL REQUIREMENTS:
- Photorealistic, commercial quality, perfect lighting and shadows.
- If the shot asks for a white background it must be solid pure #FFFFFF, with the subject isolated on it.
- Ground the subject with a subtle, realistic contact shadow only.
- No props, furniture, watermarks or text overlays unless the shot explicitly asks for them.

OUTPUT: A single image."""


class ProductionRenderer:
    """
    Renders one shot per call. This is the expensive stage: it runs once per
    task, `pack_size` times per job.
    """

    def __init__(self, client: InferenceClient) -> None:
        self.client = client

    async def render(self, task: RenderTask) -> bytes:
        prompt = build_render_prompt(task)
        logger.debug("Rendering shot %d: %s", task.index, task.description)
        image = await self.client.generate_image(prompt, images=task.assets)
        logger.info("Rendered shot %d (%d bytes)", task.index, len(image))
        return image


def build_render_prompt(task: RenderTask) -> str:
    sections = [
        "You are an expert e-commerce photographer and retoucher.",
        f"TASK: Produce shot {task.index + 1} of a product listing pack.",
        _identity_lock(task.audit),
        f"SHOT: {task.description}",
        _asset_legend(task),
        _mode_direction(task),
    ]
    if task.brand is not None:
        sections.append(_brand_overlay(task.brand))
    sections.append(GLOBAL_REQUIREMENTS)
    return "\n\n".join(s for s in sections if s)


def _identity_lock(audit: str) -> str:
    return (
        "IDENTITY LOCK: The subject must match the audit below exactly. Preserve every "
        "stated label, logo, text, shape, proportion, material and colour. No label drift, "
        "no geometry drift, no invented details.\n"
        f"AUDIT: {audit}"
    )


def _asset_legend(task: RenderTask) -> str:
    lines: List[str] = ["INPUT IMAGES (in attachment order):"]
    for position, asset in enumerate(task.assets, start=1):
        lines.append(f"- Image {position}: {ASSET_LABELS[asset.role]}")
    return "\n".join(lines)


def _mode_direction(task: RenderTask) -> str:
    if task.mode is GenerationMode.HUMAN_MODEL:
        has_model_photo = any(a.role is AssetRole.MODEL for a in task.assets)
        if has_model_photo:
            model = "Use the TARGET MODEL REFERENCE. Keep facial identity and body shape exactly."
        elif task.talent is not None:
            model = f"Generate a photorealistic model: {task.talent.describe()}."
        else:
            model = "Generate a photorealistic model suited to the garment."
        return (
            "CATEGORY: Fashion/Apparel "
            f"({task.category}).\n"
            f"VIBE: {task.style}.\n"
            f"MODEL: {model}\n"
            "GARMENT: The model must be wearing the product from the MAIN PRODUCT REFERENCE, "
            "with realistic fabric drape, folds and texture."
        )

    return f"CATEGORY: Physical Product ({task.category}).\nVIBE: {task.style}."


def _brand_overlay(brand: BrandOverlay) -> str:
    lines = ["BRAND IDENTITY:"]
    if brand.name:
        lines.append(f"- Brand: {brand.name}")
    if brand.palette:
        lines.append(f"- Palette: {', '.join(brand.palette)}")
    if brand.tone:
        lines.append(f"- Tone: {brand.tone}")
    if brand.negative_prompt:
        lines.append(f"- Avoid: {brand.negative_prompt}")
    return "\n".join(lines) if len(lines) > 1 else ""
