"""Tests for the email expense parser."""

import base64
from datetime import date
from decimal import Decimal

import pytest

from financy.services.email_parser import (
    DEFAULT_CATEGORY,
    UNKNOWN_MERCHANT,
    EmailExpenseParser,
    parse_email_to_expense,
)

TODAY = date(2025, 2, 10)


def encode(text: str) -> str:
    """Gmail style base64url without padding."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def gmail_message(body: str, subject: str = "", sender: str = "", sent: str = None) -> dict:
    headers = [{"name": "Subject", "value": subject}, {"name": "From", "value": sender}]
    if sent:
        headers.append({"name": "Date", "value": sent})
    return {
        "id": "18c2f0a",
        "payload": {"headers": headers, "body": {"data": encode(body)}},
    }


@pytest.fixture
def parser():
    return EmailExpenseParser()


class TestEmailExpenseParser:
    """Test extraction from typical receipts."""

    def test_card_receipt(self, parser):
        message = gmail_message(
            "You paid $5.75 at Starbucks on 02/03 with your card ending 4411.",
            subject="Your receipt",
            sender="Bank Alerts <alerts@mybank.com>",
            sent="Mon, 03 Feb 2025 10:15:00 +0000",
        )

        parsed = parser.parse(message, today=TODAY)

        assert parsed.amount == Decimal("5.75")
        assert parsed.merchant == "Starbucks"
        assert parsed.date == date(2025, 2, 3)
        assert parsed.category == "food"
        assert parsed.description == "Your receipt"
        assert parsed.currency == "USD"
        assert parsed.confidence == pytest.approx(1.0)

    def test_usd_suffix_and_thousands(self, parser):
        message = gmail_message(
            "Charge of 1,234.00 USD from Acme Corp 4411 was approved.",
            subject="Card charge notification",
            sent="Tue, 04 Feb 2025 08:00:00 +0000",
        )

        parsed = parser.parse(message, today=TODAY)

        assert parsed.amount == Decimal("1234.00")
        assert parsed.merchant == "Acme Corp"
        assert parsed.category == DEFAULT_CATEGORY
        assert parsed.confidence == pytest.approx(0.8)

    def test_merchant_from_sender_domain(self, parser):
        message = gmail_message(
            "Your payment of $15.49 was processed.",
            subject="Payment confirmation",
            sender="Netflix <info@netflix.com>",
            sent="Wed, 05 Feb 2025 12:00:00 +0000",
        )

        parsed = parser.parse(message, today=TODAY)

        assert parsed.merchant == "NETFLIX"
        assert parsed.category == "subscriptions"
        assert parsed.confidence == pytest.approx(0.7)

    def test_missing_everything_lowers_confidence(self, parser):
        message = gmail_message("Debit card transaction amount: 20.00")

        parsed = parser.parse(message, today=TODAY)

        assert parsed.amount == Decimal("20.00")
        assert parsed.merchant == UNKNOWN_MERCHANT
        assert parsed.date == TODAY
        assert parsed.description == UNKNOWN_MERCHANT
        assert parsed.confidence == pytest.approx(0.2)

    def test_unparseable_date_falls_back(self, parser):
        message = gmail_message(
            "You paid $8.00 at Starbucks on Friday",
            subject="Receipt",
            sent="not a date",
        )

        parsed = parser.parse(message, today=TODAY)

        assert parsed.date == TODAY
        assert parsed.confidence == pytest.approx(0.9)

    def test_multipart_uses_plain_text(self, parser):
        message = {
            "id": "abc",
            "payload": {
                "headers": [{"name": "Subject", "value": "Purchase receipt"}],
                "parts": [
                    {"mimeType": "text/html", "body": {"data": encode("<b>$999.00</b>")}},
                    {"mimeType": "text/plain", "body": {"data": encode("Total $42.10 at Target on 01/02")}},
                ],
            },
        }

        parsed = parser.parse(message, today=TODAY)

        assert parsed.amount == Decimal("42.10")
        assert parsed.merchant == "Target"
        assert parsed.category == "shopping"

    def test_non_financial_email(self, parser):
        message = gmail_message("See you at noon", subject="Lunch tomorrow?")

        assert parser.parse(message, today=TODAY) is None

    def test_financial_email_without_amount(self, parser):
        message = gmail_message("Your statement is ready", subject="Your bank statement")

        assert parser.parse(message, today=TODAY) is None

    def test_to_dict(self, parser):
        parsed = parse_email_to_expense(
            gmail_message("You paid $5.75 at Starbucks on 02/03", subject="Receipt"),
            today=TODAY,
        )

        data = parsed.to_dict()

        assert data["amount"] == "5.75"
        assert data["date"] == "2025-02-10"
        assert data["merchant"] == "Starbucks"


class TestCategorize:
    @pytest.mark.parametrize(
        "merchant,expected",
        [
            ("Uber Eats", "food"),
            ("Lyft", "transportation"),
            ("Amazon", "shopping"),
            ("City Electric", "utilities"),
            ("Spotify", "subscriptions"),
            ("CVS Pharmacy", "healthcare"),
            ("Blue Bottle", DEFAULT_CATEGORY),
        ],
    )
    def test_keywords(self, parser, merchant, expected):
        assert parser.categorize(merchant, "", "") == expected
