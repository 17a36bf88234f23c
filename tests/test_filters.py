"""
Unit tests for the promotional filter, amount resolver, order-id resolver
and merchant resolver.
"""

import re
from decimal import Decimal

from core.amount import find_amounts, resolve_amount
from core.config import EngineConfig
from core.identifiers import resolve_order_id
from core.merchant import UNKNOWN_MERCHANT, resolve_merchant
from core.promo import PROMO, SKIP, PromotionalPolicy


# ---------------------------------------------------------------------------
# PromotionalPolicy
# ---------------------------------------------------------------------------

class TestPromotionalHeaders:

    policy = PromotionalPolicy()

    def test_shipping_update_skipped(self):
        assert self.policy.check_headers("Your order has been shipped", "x@amazon.in") == SKIP

    def test_otp_skipped(self):
        assert self.policy.check_headers("Your OTP for login", "x@bank.com") == SKIP

    def test_use_code_is_promo(self):
        assert self.policy.check_headers("Flat 50% off — use code SAVE50!", "x@shop.com") == PROMO

    def test_sale_subject_is_promo(self):
        assert self.policy.check_headers("Mega Sale is live", "x@shop.com") == PROMO

    def test_marketing_sender_is_promo(self):
        assert self.policy.check_headers("Your picks", "Myntra Offers <offers@myntra.com>") == PROMO

    def test_skip_checked_before_promo(self):
        assert self.policy.check_headers("Welcome to the mega sale", "x@shop.com") == SKIP

    def test_receipt_proceeds(self):
        assert self.policy.check_headers("Your payment was successful", "noreply@flipkart.com") is None

    def test_policy_lists_are_swappable(self):
        policy = PromotionalPolicy(skip_patterns=(re.compile("receipt", re.I),))
        assert policy.check_headers("Your receipt", "a@b.com") == SKIP


class TestPromotionalBody:

    policy = PromotionalPolicy()

    def test_pure_offer_rejected(self):
        assert self.policy.is_promotional_body("Earn ₹100 cashback on your next order! Shop now.")

    def test_receipt_with_offer_survives(self):
        body = "Your order has been confirmed. Earn ₹100 cashback on your next order."
        assert not self.policy.is_promotional_body(body)

    def test_plain_receipt_not_promotional(self):
        assert not self.policy.is_promotional_body("Order Total: ₹499")


# ---------------------------------------------------------------------------
# Amount resolution
# ---------------------------------------------------------------------------

class TestFindAmounts:

    def test_out_of_bounds_dropped(self):
        found = find_amounts("₹0.50 and ₹2,000,000 and ₹45")
        assert [value for value, _ in found] == [Decimal("45")]

    def test_offsets_reported(self):
        found = find_amounts("ab ₹10")
        assert found == [(Decimal("10"), 3)]

    def test_trailing_period_ignored(self):
        assert find_amounts("Paid ₹499. Thanks")[0][0] == Decimal("499")

    def test_decimal_and_grouping(self):
        assert find_amounts("₹1,299.50")[0][0] == Decimal("1299.50")

    def test_bounds_from_config(self):
        config = EngineConfig(max_amount=Decimal("100"))
        assert find_amounts("₹500", config) == []


class TestResolveAmount:

    def test_expense_takes_largest_near_anchor(self):
        body = "Item ₹200 Delivery ₹40 Order Total: ₹240"
        assert resolve_amount(body, "expense") == Decimal("240")

    def test_subtotal_does_not_shadow_total(self):
        body = "Subtotal: ₹400 Delivery fee ₹40 Total: ₹440"
        assert resolve_amount(body, "expense") == Decimal("440")

    def test_amount_outside_window_ignored(self):
        body = "Order Total: ₹500 " + "x" * 400 + " ₹9,999"
        assert resolve_amount(body, "expense") == Decimal("500")

    def test_refund_takes_smallest_near_anchor(self):
        body = "Refund of ₹250 for order total ₹1,299"
        assert resolve_amount(body, "refund") == Decimal("250")

    def test_cashback_anchor(self):
        body = "Cashback of ₹50 has been credited. Your order was ₹600."
        assert resolve_amount(body, "cashback") == Decimal("50")

    def test_fallback_without_anchor(self):
        assert resolve_amount("₹120 and ₹80", "expense") == Decimal("120")
        assert resolve_amount("₹120 and ₹80", "cashback") == Decimal("80")

    def test_no_amount(self):
        assert resolve_amount("Your order has been placed", "expense") is None


# ---------------------------------------------------------------------------
# Order id resolution
# ---------------------------------------------------------------------------

class TestResolveOrderId:

    def test_labelled_id_beats_bare_hash(self):
        assert resolve_order_id("Ref #XYZ999 for Order ID: ABC123") == "ABC123"

    def test_bare_hash_fallback(self):
        assert resolve_order_id("Thanks for shopping #XYZ999") == "XYZ999"

    def test_result_uppercased(self):
        assert resolve_order_id("Order No. od12345 placed") == "OD12345"

    def test_lowercase_hashtag_ignored(self):
        assert resolve_order_id("Follow us #foodies2025") is None

    def test_invoice_before_transaction(self):
        body = "Transaction ID: TXN998877 Invoice No: INV-2024-001"
        assert resolve_order_id(body) == "INV-2024-001"

    def test_pnr(self):
        assert resolve_order_id("PNR: ABC1234567 confirmed") == "ABC1234567"

    def test_upi_reference(self):
        assert resolve_order_id("UPI Ref No: 412345678901") == "412345678901"

    def test_nothing_found(self):
        assert resolve_order_id("₹1,250 has been debited") is None


# ---------------------------------------------------------------------------
# Merchant resolution
# ---------------------------------------------------------------------------

class TestResolveMerchant:

    def test_quoted_display_name_known(self):
        assert resolve_merchant('"Flipkart" <noreply@flipkart.com>') == "Flipkart"

    def test_role_suffix_stripped(self):
        assert resolve_merchant("Swiggy Support <noreply@swiggy.in>") == "Swiggy"

    def test_unknown_display_name_kept(self):
        assert resolve_merchant("HDFC Bank <alerts@hdfcbank.net>") == "HDFC Bank"

    def test_domain_fallback(self):
        assert resolve_merchant("alerts@hdfcbank.net") == "Hdfcbank"

    def test_subdomain_prefix_dropped(self):
        assert resolve_merchant("<orders@mail.zomato.com>") == "Zomato"

    def test_known_domain(self):
        assert resolve_merchant("noreply@swiggy.in") == "Swiggy"

    def test_empty_sender(self):
        assert resolve_merchant("") == UNKNOWN_MERCHANT
