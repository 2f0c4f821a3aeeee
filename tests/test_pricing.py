import pytest

from ecomkit.errors import InvalidRequestError
from ecomkit.models import BatchResult
from ecomkit.pricing import DEFAULT_PACK_COST, PACK_COST_KEYS, CostPolicy, charge_for, pack_cost

COSTS = {
    "Pixa Ecommerce Kit (5 Assets)": 20,
    "Pixa Ecommerce Kit (7 Assets)": 28,
    "Pixa Ecommerce Kit (10 Assets)": 40,
}


def test_pack_cost_uses_feature_table_then_default():
    assert pack_cost(7, COSTS) == 28
    assert pack_cost(10) == DEFAULT_PACK_COST
    assert pack_cost(5, {"something else": 3}) == DEFAULT_PACK_COST
    assert set(PACK_COST_KEYS) == {5, 7, 10}


def test_pack_cost_rejects_unknown_size():
    with pytest.raises(InvalidRequestError):
        pack_cost(6)


@pytest.mark.parametrize("delivered", [0, 2, 7])
def test_requested_policy_charges_full_pack(delivered):
    result = BatchResult(images=[b"x"] * delivered, requested=7)
    assert charge_for(result, CostPolicy.REQUESTED, COSTS) == 28


def test_requested_is_the_default_policy():
    assert charge_for(BatchResult(images=[], requested=5), feature_costs=COSTS) == 20


@pytest.mark.parametrize("delivered, expected", [(0, 0), (1, 4), (3, 12), (4, 16), (5, 20)])
def test_delivered_policy_prorates(delivered, expected):
    result = BatchResult(images=[b"x"] * delivered, requested=5)
    assert charge_for(result, CostPolicy.DELIVERED, COSTS) == expected


def test_delivered_policy_rounds_up():
    result = BatchResult(images=[b"x"], requested=7)
    # 28 * 1 / 7 == 4 exactly; 25 * 1 / 7 rounds up to 4
    assert charge_for(result, CostPolicy.DELIVERED, COSTS) == 4
    assert charge_for(result, CostPolicy.DELIVERED) == 4
