import logging

from .inference import InferenceClient
from .models import FALLBACK_AUDIT, AuditReport, SourceAsset

logger = logging.getLogger(__name__)

AUDIT_PROMPT = """Act as a forensic product photographer preparing an identity contract for a retouching team.
Study the attached product photo and report ONLY facts that must never change in any re-shoot:

1. Marks: transcribe every visible label, logo, printed text, number and symbol exactly as written, with its position.
2. Geometry: describe the silhouette, proportions, edges, openings and any asymmetry.
3. Materials: name each material and its surface finish (matte, gloss, brushed, transparent, knit, ...), plus colours.

Respond with one compact paragraph of plain text. No headings, no advice, no speculation about details you cannot see."""


class ForensicAuditor:
    """
    Turns the primary asset into a short textual identity contract that the
    renderer re-injects into every shot prompt.
    """

    def __init__(self, client: InferenceClient) -> None:
        self.client = client

    async def audit(self, asset: SourceAsset) -> AuditReport:
        """
        One inference call. Never raises: any failure degrades to
        `FALLBACK_AUDIT` so the job keeps moving.
        """
        try:
            report = await self.client.generate_text(AUDIT_PROMPT, images=[asset])
        except Exception as exc:
            logger.warning("Forensic audit failed, using fallback report: %s", exc)
            return FALLBACK_AUDIT

        report = (report or "").strip()
        if not report:
            logger.warning("Forensic audit returned no text, using fallback report")
            return FALLBACK_AUDIT

        logger.info("Forensic audit complete (%d chars)", len(report))
        return report
