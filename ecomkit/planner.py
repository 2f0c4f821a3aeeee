import json
import logging
from typing import Any, List

from .inference import InferenceClient
from .models import AuditReport, GenerationMode, GenerationRequest, ShotStrategy

logger = logging.getLogger(__name__)


class StrategyPlanner:
    """
    Adapter for LLM-powered shot planning.

    Asks for exactly `pack_size` distinct shot descriptions. Anything short
    of that comes back as an empty list; padding is the orchestrator's job.
    """

    def __init__(self, client: InferenceClient) -> None:
        self.client = client

    async def plan(self, audit: AuditReport, request: GenerationRequest) -> ShotStrategy:
        prompt = self._build_prompt(audit, request)
        try:
            raw = await self.client.generate_text(prompt)
        except Exception as exc:
            logger.warning("Strategy planning failed: %s", exc)
            return []

        shots = parse_shot_list(raw)
        if len(shots) < request.pack_size:
            logger.warning(
                "Strategy planner returned %d usable shot(s), %d required",
                len(shots),
                request.pack_size,
            )
            return []

        return shots[: request.pack_size]

    @staticmethod
    def _build_prompt(audit: AuditReport, request: GenerationRequest) -> str:
        """
        The model is instructed to respond *only* with a JSON array of
        strings, one shot description per element.
        """
        if request.mode is GenerationMode.HUMAN_MODEL:
            subject = (
                "a fashion/apparel item worn by a human model; mix catalogue "
                "angles (front, side, back) with editorial and fabric detail shots"
            )
        else:
            subject = (
                "a physical product; mix marketplace-compliant white-background "
                "angles with lifestyle and macro detail shots"
            )

        lines = [
            "You are a senior brand strategist planning an e-commerce photo pack.",
            f"- Subject: {subject}.",
            f'- Category: "{request.category}"',
            f'- Visual vibe: "{request.style}"',
            f"- Identity facts (do not contradict): {audit}",
        ]
        if (
            request.mode is GenerationMode.HUMAN_MODEL
            and request.talent is not None
            and request.model_reference is None
        ):
            lines.append(f"- Model: {request.talent.describe()}")
        if request.brand is not None and request.brand.tone:
            lines.append(f"- Brand tone: {request.brand.tone}")

        lines.extend(
            [
                "",
                f"Plan exactly {request.pack_size} distinct shots. Each shot is one or two "
                "sentences covering camera angle, framing, background and lighting.",
                "Return ONLY a valid JSON array of strings with no surrounding commentary:",
                '["shot description", "..."]',
            ]
        )
        return "\n".join(lines) + "\n"


def parse_shot_list(text: str) -> List[str]:
    """
    Parse the planner response into a list of shot descriptions.

    Accepts a bare JSON array or an object with a "shots" array, optionally
    wrapped in a Markdown code fence. Returns [] unless every element is a
    non-blank string.
    """
    content = (text or "").strip()
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0]
    elif "```" in content:
        content = content.split("```")[1].split("```")[0]

    try:
        payload: Any = json.loads(content)
    except ValueError:
        return []

    if isinstance(payload, dict):
        payload = payload.get("shots")
    if not isinstance(payload, list):
        return []

    shots = []
    for item in payload:
        if not isinstance(item, str) or not item.strip():
            return []
        shots.append(item.strip())
    return shots
