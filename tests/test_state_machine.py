"""
Tests for the customization state machine.

Drives the machine with typed events only; text parsing is covered in
test_parsing.py.
"""
from decimal import Decimal

import pytest

from cafe_bot.tasks import (
    ChooseLevel,
    ChooseSize,
    ConversationSession,
    CustomizationState as S,
    CustomizationStateMachine,
    Navigate,
    OrderAssembler,
    SelectProduct,
    SetQuantity,
    ToggleAddOn,
)
from cafe_bot.tasks.message_builder import NAV_CAPTIONS

from tests.test_helpers import AMERICANO, CARAMEL_FRAPPE, ICED_LATTE, LATTE


@pytest.fixture
def machine(catalog):
    return CustomizationStateMachine(catalog)


def run(machine, session, *events):
    """Apply events in order, carrying the session forward; return the last result."""
    result = None
    for event in events:
        result = machine.handle(session, event)
        session = result.session
    return result


def customizing(machine, product_id=LATTE, size="medium"):
    """Session sitting in CUSTOMIZING with a product and size chosen."""
    result = run(
        machine,
        ConversationSession(identity="cust-1"),
        SelectProduct(product_id=product_id),
        ChooseSize(size=size),
    )
    assert result.session.state == S.CUSTOMIZING
    return result.session


class TestProductSelection:
    """Browsing and product selection."""

    def test_selecting_product_prompts_for_size(self, machine):
        """A product selection creates a customization and asks for the size."""
        result = machine.handle(ConversationSession(identity="cust-1"), SelectProduct(product_id=LATTE))

        assert result.session.state == S.SELECTING_SIZE
        assert result.prompt_type == "size_options"
        assert result.session.customization.product_name == "Latte"
        assert result.session.customization.quantity == 1
        assert "Large" in result.options
        assert result.errors == []

    def test_unknown_product_is_rejected(self, machine):
        """An unknown product id leaves the session browsing."""
        session = ConversationSession(identity="cust-1")
        result = machine.handle(session, SelectProduct(product_id=999))

        assert result.session.state == S.BROWSING
        assert result.session.customization is None
        assert result.errors
        assert result.prompt_type == "product_list"

    def test_unavailable_product_is_rejected(self, machine, catalog):
        """A product marked unavailable cannot be selected."""
        latte = catalog.get_product(LATTE)
        catalog.put(latte.model_copy(update={"available": False}))

        result = machine.handle(ConversationSession(identity="cust-1"), SelectProduct(product_id=LATTE))

        assert result.session.state == S.BROWSING
        assert result.errors
        assert "Latte" not in result.options

    def test_menu_groups_products_by_category(self, machine):
        """The browsing prompt lists every available product."""
        result = machine.render(ConversationSession(identity="cust-1"))

        assert result.prompt_type == "product_list"
        assert result.options[0] == "Americano"
        assert "Mocha Frappe" in result.options
        assert "Hot Coffee" in result.message
        assert "Frappes" in result.message


class TestLeafSelections:
    """Size, sugar, ice and quantity steps."""

    def test_size_choice_returns_to_customizing(self, machine):
        session = customizing(machine, size="large")
        assert session.customization.size == "large"

    def test_invalid_size_is_rejected_without_mutation(self, machine):
        """An undeclared size re-prompts and leaves the session untouched."""
        session = machine.handle(ConversationSession(identity="cust-1"), SelectProduct(product_id=LATTE)).session

        result = machine.handle(session, ChooseSize(size="venti"))

        assert result.session == session
        assert result.session.state == S.SELECTING_SIZE
        assert result.session.customization.size is None
        assert result.errors

    def test_frappe_has_no_small_size(self, machine):
        session = machine.handle(
            ConversationSession(identity="cust-1"), SelectProduct(product_id=CARAMEL_FRAPPE)
        ).session

        result = machine.handle(session, ChooseSize(size="small"))

        assert result.session.state == S.SELECTING_SIZE
        assert result.errors

    def test_last_accepted_value_wins(self, machine):
        """Repeated choices overwrite rather than accumulate."""
        session = customizing(machine, size="small")
        result = run(
            machine, session,
            Navigate(target="size"), ChooseSize(size="large"),
            Navigate(target="sugar"), ChooseLevel(level="low"),
            Navigate(target="sugar"), ChooseLevel(level="high"),
        )

        assert result.session.customization.size == "large"
        assert result.session.customization.sugar_level == "high"

    def test_invalid_level_is_rejected(self, machine):
        session = run(machine, customizing(machine), Navigate(target="sugar")).session

        result = machine.handle(session, ChooseLevel(level="extreme"))

        assert result.session.state == S.SELECTING_SUGAR
        assert result.session.customization.sugar_level is None
        assert result.errors

    def test_back_from_leaf_discards_attempt(self, machine):
        """'back' from a leaf returns to customizing without storing anything."""
        session = machine.handle(ConversationSession(identity="cust-1"), SelectProduct(product_id=LATTE)).session

        result = machine.handle(session, Navigate(target="back"))

        assert result.session.state == S.CUSTOMIZING
        assert result.session.customization.size is None

    @pytest.mark.parametrize("quantity", [0, 7, -1])
    def test_quantity_out_of_range_is_rejected(self, machine, quantity):
        session = run(machine, customizing(machine), Navigate(target="quantity")).session

        result = machine.handle(session, SetQuantity(quantity=quantity))

        assert result.session.state == S.SELECTING_QUANTITY
        assert result.session.customization.quantity == 1
        assert result.errors

    def test_quantity_in_range_is_accepted(self, machine):
        result = run(machine, customizing(machine), Navigate(target="quantity"), SetQuantity(quantity=6))

        assert result.session.state == S.CUSTOMIZING
        assert result.session.customization.quantity == 6


class TestIceLevel:
    """Ice level only applies to iced drinks and frappes."""

    def test_ice_step_refused_for_hot_drink(self, machine):
        """Asking for ice on a hot drink stays in customizing with guidance."""
        result = machine.handle(customizing(machine, product_id=AMERICANO), Navigate(target="ice"))

        assert result.session.state == S.CUSTOMIZING
        assert result.errors
        assert NAV_CAPTIONS["ice"] not in result.options

    def test_ice_step_available_for_iced_drink(self, machine):
        session = customizing(machine, product_id=ICED_LATTE)

        result = run(machine, session, Navigate(target="ice"), ChooseLevel(level="low"))

        assert result.session.state == S.CUSTOMIZING
        assert result.session.customization.ice_level == "low"

    def test_iced_drink_requires_ice_level_to_confirm(self, machine):
        session = customizing(machine, product_id=ICED_LATTE)

        result = run(
            machine, session,
            Navigate(target="sugar"), ChooseLevel(level="none"),
            Navigate(target="review"), Navigate(target="confirm"),
        )

        assert result.finalize_requested is False
        assert result.session.state == S.REVIEWING
        assert "ice level" in result.errors[0]


class TestAddOns:
    """Add-on toggling stays in the add-on step."""

    def test_toggle_adds_and_stays_in_addons(self, machine):
        result = run(machine, customizing(machine), Navigate(target="addons"), ToggleAddOn(name="Extra Shot"))

        assert result.session.state == S.SELECTING_ADDONS
        assert result.session.customization.add_ons == ["Extra Shot"]
        assert "✅ Extra Shot" in result.options
        assert "➕ Vanilla Syrup" in result.options

    def test_toggle_twice_restores_prior_set(self, machine):
        """Toggling is its own inverse."""
        session = run(
            machine, customizing(machine),
            Navigate(target="addons"), ToggleAddOn(name="Vanilla Syrup"),
        ).session
        before = list(session.customization.add_ons)

        result = run(machine, session, ToggleAddOn(name="Extra Shot"), ToggleAddOn(name="extra shot"))

        assert result.session.customization.add_ons == before
        assert "➕ Extra Shot" in result.options

    def test_unknown_add_on_is_rejected(self, machine):
        session = run(machine, customizing(machine), Navigate(target="addons")).session

        result = machine.handle(session, ToggleAddOn(name="Whiskey"))

        assert result.session.customization.add_ons == []
        assert result.errors


class TestReviewAndTerminalStates:
    """Review, confirm, cancel and restart."""

    def test_latte_scenario_totals_twelve(self, machine, catalog):
        """Large latte, medium sugar, extra shot, two of them: 12.00 and no ice."""
        result = run(
            machine,
            ConversationSession(identity="cust-1"),
            SelectProduct(product_id=LATTE),
            ChooseSize(size="large"),
            Navigate(target="sugar"), ChooseLevel(level="medium"),
            Navigate(target="quantity"), SetQuantity(quantity=2),
            Navigate(target="addons"), ToggleAddOn(name="Extra Shot"),
            Navigate(target="back"),
            Navigate(target="review"),
            Navigate(target="confirm"),
        )

        assert result.finalize_requested is True
        customization = result.session.customization
        assert customization.ice_level is None

        assembled = OrderAssembler(catalog).assemble([customization])
        assert assembled.total == Decimal("12.00")
        assert assembled.items[0].ice_level is None

    def test_confirm_with_missing_fields_lists_them(self, machine):
        session = customizing(machine)

        result = run(machine, session, Navigate(target="review"), Navigate(target="confirm"))

        assert result.finalize_requested is False
        assert "sugar level" in result.errors[0]
        assert result.session.state == S.REVIEWING

    def test_review_lists_missing_fields(self, machine):
        result = machine.handle(customizing(machine), Navigate(target="review"))

        assert result.prompt_type == "order_review"
        assert "Still needed: sugar level" in result.message

    def test_back_from_review_returns_to_customizing(self, machine):
        result = run(machine, customizing(machine), Navigate(target="review"), Navigate(target="back"))
        assert result.session.state == S.CUSTOMIZING

    def test_cancel_discards_customization(self, machine):
        result = machine.handle(customizing(machine), Navigate(target="cancel"))

        assert result.session.state == S.CANCELLED
        assert result.session.customization is None
        assert result.prompt_type == "cancelled"

    def test_input_after_cancel_starts_fresh_browse(self, machine):
        cancelled = machine.handle(customizing(machine), Navigate(target="cancel")).session

        result = machine.handle(cancelled, SelectProduct(product_id=AMERICANO))

        assert result.session.state == S.SELECTING_SIZE
        assert result.session.customization.product_name == "Americano"

    def test_menu_navigation_discards_customization(self, machine):
        result = machine.handle(customizing(machine), Navigate(target="menu"))

        assert result.session.state == S.BROWSING
        assert result.session.customization is None

    def test_product_withdrawn_mid_flow_resets_to_browsing(self, machine, catalog):
        session = customizing(machine)
        catalog.remove(LATTE)

        result = machine.handle(session, Navigate(target="sugar"))

        assert result.session.state == S.BROWSING
        assert result.session.customization is None
        assert "no longer available" in result.errors[0]

    def test_non_navigation_input_in_customizing_is_rejected(self, machine):
        session = customizing(machine)

        result = machine.handle(session, ChooseLevel(level="low"))

        assert result.session == session
        assert result.errors
