from enum import Enum
from typing import Dict, Mapping, Optional

from .errors import InvalidRequestError
from .models import PACK_SIZES, BatchResult

PACK_COST_KEYS: Dict[int, str] = {
    5: "Pixa Ecommerce Kit (5 Assets)",
    7: "Pixa Ecommerce Kit (7 Assets)",
    10: "Pixa Ecommerce Kit (10 Assets)",
}
DEFAULT_PACK_COST = 25


class CostPolicy(str, Enum):
    """
    How a finished batch is charged.

    REQUESTED charges the full pack price whatever was delivered, which is
    how the product has always billed. DELIVERED pro-rates the pack price by
    images actually produced, and charges nothing for an empty batch.
    """

    REQUESTED = "requested"
    DELIVERED = "delivered"


def pack_cost(pack_size: int, feature_costs: Optional[Mapping[str, int]] = None) -> int:
    if pack_size not in PACK_SIZES:
        raise InvalidRequestError(f"Unsupported pack size {pack_size!r}")
    key = PACK_COST_KEYS[pack_size]
    return int((feature_costs or {}).get(key, DEFAULT_PACK_COST))


def charge_for(
    result: BatchResult,
    policy: CostPolicy = CostPolicy.REQUESTED,
    feature_costs: Optional[Mapping[str, int]] = None,
) -> int:
    """Credits to deduct for `result` under `policy`."""
    full_price = pack_cost(result.requested, feature_costs)
    if policy is CostPolicy.REQUESTED:
        return full_price
    if result.is_empty:
        return 0
    # Round up so a partial batch is never free.
    return -(-full_price * result.delivered // result.requested)
