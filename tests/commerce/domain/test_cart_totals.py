"""Tests for folding line pricing into cart totals."""

from decimal import Decimal

import pytest
from commerce.pricing.engine import OfferTerms
from commerce.pricing.totals import CartLineInput, compute_totals


def _line(variant_id, price, quantity):
    return CartLineInput(variant_id=variant_id, base_price=Decimal(price), quantity=quantity)


def _cart_percentage(pct="10", minimum="500"):
    return OfferTerms(
        offer_id="cart-10",
        kind="CartPercentageOff",
        discount_value=Decimal(pct),
        min_cart_amount=Decimal(minimum),
    )


class TestEmptyCart:
    def test_all_totals_zero(self):
        totals = compute_totals([], _cart_percentage())
        assert totals.subtotal == totals.discount == totals.shipping == totals.payable == 0
        assert totals.is_empty

    def test_shipping_not_charged_on_empty_cart(self):
        assert compute_totals([], None, shipping=Decimal("15")).payable == 0


class TestSubtotalAndItemOffers:
    def test_subtotal_without_offer(self):
        totals = compute_totals([_line("a", "100.00", 2), _line("b", "49.50", 1)])
        assert totals.subtotal == Decimal("249.50")
        assert totals.discount == 0
        assert totals.payable == Decimal("249.50")
        assert totals.offer_id is None

    def test_item_offer_only_discounts_eligible_lines(self):
        offer = OfferTerms(
            offer_id="pct-20",
            kind="PercentageOff",
            discount_value=Decimal("20"),
            eligible_variant_ids=frozenset({"a"}),
        )
        totals = compute_totals([_line("a", "100.00", 2), _line("b", "50.00", 1)], offer)
        assert totals.subtotal == Decimal("250.00")
        assert totals.discount == Decimal("40.00")
        assert totals.payable == Decimal("210.00")
        assert totals.offer_id == "pct-20"

    def test_bogo_line_discount_reaches_totals(self):
        offer = OfferTerms(
            offer_id="b2g1",
            kind="BuyXGetYFree",
            buy_quantity=2,
            free_quantity=1,
            eligible_variant_ids=frozenset({"a"}),
        )
        totals = compute_totals([_line("a", "100", 7)], offer)
        assert totals.discount == Decimal("200")
        assert totals.payable == Decimal("500")


class TestCartLevelThreshold:
    def test_below_threshold_no_discount(self):
        totals = compute_totals([_line("a", "499.00", 1)], _cart_percentage())
        assert totals.discount == 0
        assert totals.payable == Decimal("499.00")
        assert totals.offer_id is None

    def test_at_threshold_discount_applies(self):
        totals = compute_totals([_line("a", "500.00", 1)], _cart_percentage())
        assert totals.discount == Decimal("50")
        assert totals.payable == Decimal("450")
        assert totals.offer_id == "cart-10"

    def test_threshold_uses_whole_cart(self):
        totals = compute_totals([_line("a", "250.00", 1), _line("b", "125.00", 2)], _cart_percentage())
        assert totals.cart_discount == Decimal("50")

    def test_cart_fixed_off(self):
        offer = OfferTerms(
            offer_id="flat-75",
            kind="CartFixedOff",
            discount_value=Decimal("75"),
            min_cart_amount=Decimal("300"),
        )
        totals = compute_totals([_line("a", "320.00", 1)], offer)
        assert totals.discount == Decimal("75")
        assert totals.payable == Decimal("245.00")

    def test_inactive_cart_offer_ignored(self):
        offer = OfferTerms(
            offer_id="cart-10",
            kind="CartPercentageOff",
            discount_value=Decimal("10"),
            min_cart_amount=Decimal("1"),
            is_active=False,
        )
        assert compute_totals([_line("a", "500.00", 1)], offer).discount == 0


class TestPayableFloor:
    def test_cart_fixed_off_larger_than_subtotal(self):
        offer = OfferTerms(
            offer_id="flat-1000",
            kind="CartFixedOff",
            discount_value=Decimal("1000"),
            min_cart_amount=Decimal("10"),
        )
        totals = compute_totals([_line("a", "120.00", 1)], offer)
        assert totals.payable == 0
        assert totals.discount == Decimal("120.00")

    def test_cap_includes_shipping(self):
        offer = OfferTerms(
            offer_id="flat-1000",
            kind="CartFixedOff",
            discount_value=Decimal("1000"),
            min_cart_amount=Decimal("10"),
        )
        totals = compute_totals([_line("a", "120.00", 1)], offer, shipping=Decimal("15.00"))
        assert totals.discount == Decimal("135.00")
        assert totals.payable == 0

    @pytest.mark.parametrize("value", ["0.01", "99.99", "100", "5000"])
    def test_payable_never_negative(self, value):
        offer = OfferTerms(
            offer_id="flat",
            kind="CartFixedOff",
            discount_value=Decimal(value),
            min_cart_amount=Decimal("1"),
        )
        totals = compute_totals([_line("a", "19.99", 3), _line("b", "0.50", 1)], offer, shipping=Decimal("5"))
        assert totals.payable >= 0
        assert totals.payable == totals.subtotal - totals.discount + totals.shipping


class TestFailOpen:
    def test_unknown_kind_treated_as_no_offer(self):
        offer = OfferTerms(offer_id="deco", kind="HeroBanner", discount_value=Decimal("90"))
        totals = compute_totals([_line("a", "100.00", 1)], offer)
        assert totals.discount == 0
        assert totals.payable == Decimal("100.00")


class TestShipping:
    def test_shipping_added_to_payable(self):
        totals = compute_totals([_line("a", "100.00", 1)], None, shipping=Decimal("12.00"))
        assert totals.shipping == Decimal("12.00")
        assert totals.payable == Decimal("112.00")


class TestDisplayRounding:
    def test_amounts_rounded_only_for_display(self):
        offer = OfferTerms(
            offer_id="pct-33",
            kind="PercentageOff",
            discount_value=Decimal("33"),
            eligible_variant_ids=frozenset({"a"}),
        )
        totals = compute_totals([_line("a", "9.99", 3)], offer)
        assert totals.discount == Decimal("9.8901")
        assert totals.as_strings() == {
            "subtotal": "29.97",
            "discount": "9.89",
            "shipping": "0.00",
            "payable": "20.08",
        }


class TestDeterminism:
    def test_same_inputs_same_totals(self):
        lines = [_line("a", "333.33", 1), _line("b", "166.67", 1)]
        offer = _cart_percentage("7.5")
        assert compute_totals(lines, offer) == compute_totals(lines, offer)
