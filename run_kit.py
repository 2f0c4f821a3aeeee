import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from ecomkit.assets import slugify
from ecomkit.config import Settings, build_client
from ecomkit.core import KitPipeline, load_request
from ecomkit.errors import InvalidRequestError
from ecomkit.models import BatchResult
from ecomkit.pricing import CostPolicy, charge_for


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate an e-commerce image kit from a single product photo."
    )
    parser.add_argument(
        "--job",
        type=Path,
        required=True,
        help="Path to the kit job JSON file.",
    )
    parser.add_argument(
        "--input-assets",
        type=Path,
        default=None,
        help="Folder holding the job's source images (defaults to the job file's folder).",
    )
    parser.add_argument(
        "--output-root",
        type=Path,
        default=Path("outputs"),
        help="Root folder where generated images will be stored.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Override the number of renders allowed in flight at once.",
    )
    parser.add_argument(
        "--cost-policy",
        choices=[p.value for p in CostPolicy],
        default=None,
        help="How the finished batch is charged (defaults to ECOMKIT_COST_POLICY).",
    )
    parser.add_argument(
        "--feature-costs",
        type=Path,
        default=None,
        help="Optional JSON file mapping cost keys to credit prices.",
    )
    return parser.parse_args()


def main() -> int:
    # Load environment variables from a local .env file if present
    # (e.g. OPENAI_API_KEY=sk-..., REPLICATE_API_TOKEN=r8_...).
    load_dotenv()

    args = parse_args()
    settings = Settings.from_env(load_env_file=False)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        request = load_request(args.job, args.input_assets)
    except InvalidRequestError as exc:
        print(f"❌ Invalid job: {exc}")
        return 2

    if args.concurrency is not None:
        settings = replace(settings, concurrency_limit=max(1, args.concurrency))

    client = build_client(settings)
    pipeline = KitPipeline.from_settings(settings, client)

    def report_progress(done: int, total: int) -> None:
        print(f"🎨 {done}/{total} shots settled")

    print(f"📦 Generating a {request.pack_size}-image {request.mode.value} kit for '{request.category}'")
    result = asyncio.run(pipeline.run(request, on_progress=report_progress))

    job_slug = slugify(args.job.stem)
    out_dir = args.output_root / job_slug
    out_dir.mkdir(parents=True, exist_ok=True)
    for n, image in enumerate(result.images, start=1):
        (out_dir / f"{job_slug}_{n:02d}.jpg").write_bytes(image)

    for failure in result.failures:
        print(f"⚠️  Shot {failure.index + 1} failed: {failure.reason}")

    policy = CostPolicy(args.cost_policy) if args.cost_policy else settings.cost_policy
    charge = charge_for(result, policy, _load_feature_costs(args.feature_costs))
    print(summarize(result, policy, charge, out_dir))
    return 1 if result.is_empty else 0


def summarize(result: BatchResult, policy: CostPolicy, charge: int, out_dir: Path) -> str:
    """One-line outcome report. The charge is shown even when nothing was delivered."""
    billing = f"charge under '{policy.value}' policy: {charge} credits"
    if result.is_empty:
        return f"❌ Kit generation failed: no images were produced ({billing})"
    status = "partial kit" if result.is_partial else "kit"
    return (
        f"✅ Saved {result.delivered}/{result.requested} image(s) as a {status} to {out_dir} "
        f"({billing})"
    )


def _load_feature_costs(path: Optional[Path]) -> Optional[Dict[str, int]]:
    if path is None:
        return None
    with path.open("r", encoding="utf-8") as f:
        return {str(k): int(v) for k, v in json.load(f).items()}


if __name__ == "__main__":
    sys.exit(main())
