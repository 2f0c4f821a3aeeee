from pathlib import Path

from ecomkit.models import BatchResult
from ecomkit.pricing import CostPolicy, charge_for
from run_kit import summarize


def test_empty_batch_still_reports_the_charge():
    result = BatchResult(images=[], requested=5)
    charge = charge_for(result, CostPolicy.REQUESTED)

    line = summarize(result, CostPolicy.REQUESTED, charge, Path("outputs/mug"))

    assert charge == 25
    assert line.startswith("❌")
    assert "charge under 'requested' policy: 25 credits" in line


def test_partial_batch_summary():
    result = BatchResult(images=[b"x", b"y"], requested=5)

    line = summarize(result, CostPolicy.DELIVERED, 10, Path("outputs/mug"))

    assert "Saved 2/5 image(s) as a partial kit" in line
    assert "charge under 'delivered' policy: 10 credits" in line
