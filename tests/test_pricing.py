import sys
from pathlib import Path
import pytest

repo_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(repo_root))

from models import CartItem
from pricing import FLAT_SHIPPING_FEE, FREE_SHIPPING_THRESHOLD, compute_pricing, shipping_for


def line(price, qty, product_id=1):
    return CartItem(product_id=product_id, quantity=qty, unit_price=price)


def test_free_shipping_over_threshold():
    result = compute_pricing([line(300, 1, 1), line(150, 2, 2)])
    assert result.subtotal == 600.0
    assert result.shipping == 0.0
    assert result.total == 600.0


def test_flat_shipping_under_threshold():
    result = compute_pricing([line(100, 1)])
    assert result.subtotal == 100.0
    assert result.shipping == 25.0
    assert result.total == 125.0


@pytest.mark.parametrize("subtotal,expected", [
    (0.0, FLAT_SHIPPING_FEE),
    (499.99, FLAT_SHIPPING_FEE),
    (FREE_SHIPPING_THRESHOLD, 0.0),
    (500.01, 0.0),
    (10_000.0, 0.0),
])
def test_shipping_rule_boundaries(subtotal, expected):
    assert shipping_for(subtotal) == expected


def test_total_is_subtotal_plus_shipping():
    for items in ([line(19.99, 3)], [line(250, 2)], [line(0.1, 7), line(0.2, 3)]):
        result = compute_pricing(items)
        assert result.total == round(result.subtotal + result.shipping, 2)


def test_empty_cart_pays_shipping_on_zero_subtotal():
    result = compute_pricing([])
    assert result.subtotal == 0.0
    assert result.total == FLAT_SHIPPING_FEE


def test_pricing_is_pure():
    items = [line(499, 1, 1), line(1, 1, 2)]
    before = [i.model_dump() for i in items]
    first = compute_pricing(items)
    second = compute_pricing(items)
    assert first == second
    assert [i.model_dump() for i in items] == before
    # order of lines does not matter
    assert compute_pricing(list(reversed(items))) == first
