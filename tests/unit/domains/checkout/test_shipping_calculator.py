"""
Unit tests for ShippingCalculator.

Tests:
- Zone resolution from PIN prefix and state
- Tier lookup and tie-breaks
- Free-shipping short-circuit and fallback rate
"""

import logging
from decimal import Decimal

import pytest

from storefront.core.domain import ValidationException
from storefront.domains.checkout.domain.entities import ShippingRule
from storefront.domains.checkout.domain.services import ShippingCalculator, ShippingSource
from storefront.domains.checkout.domain.value_objects import ShippingZone
from tests.utils import tamil_nadu_rules


@pytest.fixture
def calculator():
    return ShippingCalculator()


@pytest.fixture
def rules():
    return tamil_nadu_rules()


# ============================================================================
# Tier lookup
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "quantity,expected_rate,expected_rule",
    [
        (1, Decimal("60.00"), "tn-low"),
        (3, Decimal("60.00"), "tn-low"),
        (5, Decimal("60.00"), "tn-low"),
        (6, Decimal("120.00"), "tn-high"),
        (40, Decimal("120.00"), "tn-high"),
    ],
)
def test_tamil_nadu_pin_uses_tamil_nadu_tiers(calculator, rules, quantity, expected_rate, expected_rule):
    result = calculator.calculate("638656", None, quantity, [False], rules)

    assert result.zone == ShippingZone.TAMIL_NADU
    assert result.amount == expected_rate
    assert result.rule_id == expected_rule
    assert result.source == ShippingSource.RULE
    assert result.is_tamil_nadu


@pytest.mark.unit
def test_other_pin_uses_all_india_tiers(calculator, rules):
    result = calculator.calculate("560001", None, 3, [False, False], rules)

    assert result.zone == ShippingZone.ALL_INDIA
    assert result.amount == Decimal("100.00")
    assert result.description == "All India Delivery (3 items)"


@pytest.mark.unit
def test_supplied_state_overrides_pin_prefix(calculator, rules):
    result = calculator.calculate("638656", "Karnataka", 3, [False], rules)

    assert result.zone == ShippingZone.ALL_INDIA
    assert result.rule_id == "india-low"


@pytest.mark.unit
@pytest.mark.parametrize("state", ["Tamil Nadu", "tn", "TamilNadu", " tamil  nadu "])
def test_tamil_nadu_state_aliases(calculator, rules, state):
    result = calculator.calculate("110001", state, 2, [False], rules)

    assert result.zone == ShippingZone.TAMIL_NADU
    assert result.amount == Decimal("60.00")


@pytest.mark.unit
def test_all_india_rule_used_when_zone_has_no_tier(calculator):
    rules = [
        ShippingRule(id="tn-bulk", zone="tamil_nadu", rate=Decimal("40"), min_quantity=10),
        ShippingRule(id="india-any", zone="all_india", rate=Decimal("150"), min_quantity=1),
    ]

    result = calculator.calculate("600001", None, 2, [False], rules)

    assert result.rule_id == "india-any"
    assert result.zone == ShippingZone.TAMIL_NADU


@pytest.mark.unit
def test_overlapping_tiers_prefer_higher_min_quantity(calculator):
    rules = [
        ShippingRule(id="any-qty", zone="tamil_nadu", rate=Decimal("80"), min_quantity=1),
        ShippingRule(id="bulk", zone="tamil_nadu", rate=Decimal("70"), min_quantity=5),
    ]

    result = calculator.calculate("638656", None, 6, [False], rules)

    assert result.rule_id == "bulk"


@pytest.mark.unit
def test_identical_tiers_resolve_by_input_order(calculator):
    rules = [
        ShippingRule(id="first", zone="tamil_nadu", rate=Decimal("60"), min_quantity=1, max_quantity=5),
        ShippingRule(id="second", zone="tamil_nadu", rate=Decimal("50"), min_quantity=1, max_quantity=5),
    ]

    assert calculator.calculate("638656", None, 2, [False], rules).rule_id == "first"
    assert calculator.calculate("638656", None, 2, [False], list(reversed(rules))).rule_id == "second"


@pytest.mark.unit
def test_disabled_rules_are_skipped(calculator):
    rules = [
        ShippingRule(id="off", zone="tamil_nadu", rate=Decimal("10"), is_enabled=False),
        ShippingRule(id="on", zone="tamil_nadu", rate=Decimal("60")),
    ]

    assert calculator.calculate("638656", None, 1, [False], rules).rule_id == "on"


@pytest.mark.unit
def test_zero_rate_rule_is_not_free_shipping(calculator):
    rules = [ShippingRule(id="promo", zone="tamil_nadu", rate=Decimal("0"))]

    result = calculator.calculate("638656", None, 1, [False], rules)

    assert result.amount == Decimal("0.00")
    assert result.source == ShippingSource.RULE
    assert not result.is_free
    assert result.label == "₹0.00"


@pytest.mark.unit
def test_rule_delivery_days_reported(calculator):
    rules = [ShippingRule(id="slow", zone="all_india", rate=Decimal("90"), max_delivery_days=10)]

    assert calculator.calculate("400001", None, 1, [False], rules).max_delivery_days == 10
    assert calculator.calculate("400001", None, 1, [False], tamil_nadu_rules()).max_delivery_days == 7


# ============================================================================
# Free shipping and fallback
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize("quantity", [1, 6, 50])
def test_all_free_items_ship_free_regardless_of_rules(calculator, rules, quantity):
    result = calculator.calculate("638656", None, quantity, [True, True], rules)

    assert result.amount == Decimal("0.00")
    assert result.is_free
    assert result.source == ShippingSource.FREE_SHIPPING
    assert result.label == "Free Delivery"
    assert result.rule_id is None


@pytest.mark.unit
def test_one_paid_item_disables_free_shipping(calculator, rules):
    result = calculator.calculate("638656", None, 2, [True, False], rules)

    assert result.amount == Decimal("60.00")
    assert not result.is_free


@pytest.mark.unit
def test_no_matching_rule_falls_back_and_logs(calculator, caplog):
    with caplog.at_level(logging.WARNING):
        result = calculator.calculate("560001", None, 3, [False], [])

    assert result.amount == Decimal("99.00")
    assert result.provider == "Standard"
    assert result.source == ShippingSource.FALLBACK
    assert "No shipping rule" in caplog.text


@pytest.mark.unit
def test_custom_fallback_rate(rules):
    calculator = ShippingCalculator(fallback_rate=Decimal("149"), fallback_provider="Speed Post")

    result = calculator.calculate("560001", None, 3, [False], [r for r in rules if r.zone == "tamil_nadu"])

    assert result.amount == Decimal("149.00")
    assert result.provider == "Speed Post"


# ============================================================================
# Validation
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize("postal_code", ["012345", "63865", "6386560", "63865a", "", "638 656"])
def test_malformed_pin_rejected(calculator, rules, postal_code):
    with pytest.raises(ValidationException) as exc_info:
        calculator.calculate(postal_code, None, 1, [False], rules)

    assert exc_info.value.reason == "INVALID_POSTAL_CODE"


@pytest.mark.unit
def test_malformed_pin_rejected_even_with_free_shipping(calculator, rules):
    with pytest.raises(ValidationException):
        calculator.calculate("000000", None, 1, [True], rules)


@pytest.mark.unit
def test_zero_quantity_rejected(calculator, rules):
    with pytest.raises(ValidationException) as exc_info:
        calculator.calculate("638656", None, 0, [], rules)

    assert exc_info.value.reason == "INVALID_QUANTITY"


@pytest.mark.unit
def test_result_to_dict(calculator, rules):
    data = calculator.calculate("638656", None, 3, [False], rules).to_dict()

    assert data["amount"] == "60.00"
    assert data["amount_paise"] == 6000
    assert data["zone"] == "tamil_nadu"
    assert data["source"] == "rule"
    assert data["description"] == "Tamil Nadu Delivery (3 items)"
