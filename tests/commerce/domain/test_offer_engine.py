"""Tests for single-line pricing under each offer kind."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from commerce.pricing.engine import OfferTerms, VariantPrice, free_units, price_item

BASE = VariantPrice(variant_id="var-001", base_price=Decimal("100.00"))


def _offer(kind, **fields):
    fields.setdefault("eligible_variant_ids", frozenset({"var-001"}))
    return OfferTerms(offer_id="offer-001", kind=kind, **fields)


class TestNoOffer:
    def test_no_offer_prices_at_base(self):
        result = price_item(BASE, None, quantity=3)
        assert result.unit_price == Decimal("100.00")
        assert result.unit_discount == 0
        assert result.line_discount == 0
        assert result.offer_id is None

    def test_variant_not_eligible(self):
        offer = _offer("PercentageOff", discount_value=Decimal("10"), eligible_variant_ids=frozenset({"var-999"}))
        result = price_item(BASE, offer)
        assert result.unit_price == Decimal("100.00")
        assert result.unit_discount == 0

    def test_inactive_offer_is_ignored(self):
        offer = _offer("PercentageOff", discount_value=Decimal("10"), is_active=False)
        assert price_item(BASE, offer).unit_discount == 0

    def test_expired_offer_is_ignored(self):
        now = datetime.now(UTC)
        offer = _offer("PercentageOff", discount_value=Decimal("10"), ends_at=now - timedelta(days=1))
        assert price_item(BASE, offer, as_of=now).unit_discount == 0

    def test_offer_not_started_is_ignored(self):
        now = datetime.now(UTC)
        offer = _offer("PercentageOff", discount_value=Decimal("10"), starts_at=now + timedelta(hours=1))
        assert price_item(BASE, offer, as_of=now).unit_discount == 0

    def test_offer_inside_window_applies(self):
        now = datetime.now(UTC)
        offer = _offer(
            "PercentageOff",
            discount_value=Decimal("10"),
            starts_at=now - timedelta(days=1),
            ends_at=now + timedelta(days=1),
        )
        assert price_item(BASE, offer, as_of=now).unit_discount == Decimal("10")

    def test_unknown_kind_prices_at_base(self):
        offer = _offer("Decorative", discount_value=Decimal("50"))
        assert price_item(BASE, offer).unit_price == Decimal("100.00")

    @pytest.mark.parametrize("kind", ["CartPercentageOff", "CartFixedOff"])
    def test_cart_level_kinds_defer_to_cart(self, kind):
        offer = _offer(kind, discount_value=Decimal("10"), min_cart_amount=Decimal("1"), eligible_variant_ids=frozenset())
        result = price_item(BASE, offer, quantity=5)
        assert result.unit_price == Decimal("100.00")
        assert result.line_discount == 0


class TestPercentageOff:
    def test_percentage_discount(self):
        result = price_item(BASE, _offer("PercentageOff", discount_value=Decimal("15")), quantity=2)
        assert result.unit_price == Decimal("85.00")
        assert result.unit_discount == Decimal("15.00")
        assert result.line_discount == Decimal("30.00")
        assert result.offer_id == "offer-001"

    def test_hundred_percent_is_free(self):
        result = price_item(BASE, _offer("PercentageOff", discount_value=Decimal("100")))
        assert result.unit_price == 0
        assert result.unit_discount == Decimal("100.00")

    def test_no_rounding_mid_computation(self):
        variant = VariantPrice("var-001", Decimal("9.99"))
        result = price_item(variant, _offer("PercentageOff", discount_value=Decimal("33")), quantity=3)
        assert result.unit_price == Decimal("6.6933")
        assert result.line_discount == Decimal("9.8901")


class TestFixedAmountOff:
    def test_fixed_discount(self):
        result = price_item(BASE, _offer("FixedAmountOff", discount_value=Decimal("25.50")), quantity=2)
        assert result.unit_price == Decimal("74.50")
        assert result.line_discount == Decimal("51.00")

    def test_discount_larger_than_price_floors_at_zero(self):
        result = price_item(BASE, _offer("FixedAmountOff", discount_value=Decimal("150")))
        assert result.unit_price == 0
        assert result.unit_discount == Decimal("100.00")


class TestBuyXGetYFree:
    def test_buy_two_get_one_on_seven_units(self):
        offer = _offer("BuyXGetYFree", buy_quantity=2, free_quantity=1)
        result = price_item(BASE, offer, quantity=7)
        assert result.line_discount == Decimal("200.00")
        assert result.line_total == Decimal("500.00")

    def test_partial_group_earns_nothing(self):
        offer = _offer("BuyXGetYFree", buy_quantity=2, free_quantity=1)
        result = price_item(BASE, offer, quantity=2)
        assert result.line_discount == 0
        assert result.offer_id is None

    def test_multiple_free_units_per_group(self):
        offer = _offer("BuyXGetYFree", buy_quantity=3, free_quantity=2)
        assert price_item(BASE, offer, quantity=10).line_discount == Decimal("400.00")

    @pytest.mark.parametrize(
        "quantity,buy,free,expected",
        [(7, 2, 1, 2), (3, 2, 1, 1), (1, 1, 1, 0), (4, 1, 1, 2), (11, 4, 2, 2), (0, 2, 1, 0)],
    )
    def test_free_units(self, quantity, buy, free, expected):
        assert free_units(quantity, buy, free) == expected


class TestDiscountIdentity:
    @pytest.mark.parametrize(
        "offer",
        [
            _offer("PercentageOff", discount_value=Decimal("12.5")),
            _offer("FixedAmountOff", discount_value=Decimal("0.99")),
            _offer("FixedAmountOff", discount_value=Decimal("1000")),
            _offer("BuyXGetYFree", buy_quantity=2, free_quantity=1),
            None,
        ],
    )
    @pytest.mark.parametrize("quantity", [1, 3, 7])
    def test_unit_price_plus_discount_is_base(self, offer, quantity):
        result = price_item(BASE, offer, quantity=quantity)
        assert result.unit_price + result.unit_discount == BASE.base_price
        assert result.unit_price >= 0
