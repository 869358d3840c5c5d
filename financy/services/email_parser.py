"""
Email Expense Parser.

Turns a Gmail API message (the ``users.messages.get`` JSON shape) into an
expense candidate: amount, merchant, date and a keyword category.
Non-financial mail is rejected.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from datetime import date as date_type, datetime
from decimal import Decimal, InvalidOperation
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional, Tuple

from financy.logging_config import get_logger

logger = get_logger(__name__)

UNKNOWN_MERCHANT = "Unknown Merchant"
DEFAULT_CATEGORY = "other"


@dataclass
class ParsedExpense:
    """Expense extracted from an email."""

    amount: Decimal
    merchant: str
    date: date_type
    description: str
    category: str = DEFAULT_CATEGORY
    currency: str = "USD"
    confidence: float = 1.0  # Lowered for each field that had to fall back

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "merchant": self.merchant,
            "date": self.date.isoformat(),
            "description": self.description,
            "category": self.category,
            "currency": self.currency,
            "confidence": round(self.confidence, 3),
        }


class EmailExpenseParser:
    """
    Extract expenses from transaction notification emails.

    Handles the usual receipt formats:
    - "You paid $12.50 at Blue Bottle on 03/02" -> 12.50, "Blue Bottle"
    - "Charge of 1,234.00 USD from Acme Corp 4411" -> 1234.00, "Acme Corp"
    - "Amount: 9.99 ... Merchant: Netflix" -> 9.99, "Netflix"
    """

    FINANCIAL_KEYWORDS = (
        "transaction", "payment", "charge", "purchase", "receipt", "invoice",
        "debit", "credit", "bank", "card", "venmo", "paypal", "chase", "wells fargo",
    )

    AMOUNT_PATTERNS = (
        re.compile(r"\$(\d{1,3}(?:,\d{3})*(?:\.\d{1,2})?)"),
        re.compile(r"(\d{1,3}(?:,\d{3})*(?:\.\d{1,2})?)\s*USD"),
        re.compile(r"amount:?\s*\$?(\d{1,3}(?:,\d{3})*(?:\.\d{1,2})?)", re.IGNORECASE),
    )

    # "at X on ..." / "from X 1234" need a capitalised name before the terminator
    MERCHANT_PATTERNS = (
        re.compile(r"\bat\s+([A-Z][A-Za-z&]*(?:[ \t]+[A-Za-z&]+)*?)(?=\s+on\b|\s+\d)"),
        re.compile(r"\bfrom\s+([A-Z][A-Za-z&]*(?:[ \t]+[A-Za-z&]+)*?)(?=\s+on\b|\s+\d)"),
        re.compile(r"merchant:?[ \t]*([A-Za-z&][A-Za-z \t&]*)", re.IGNORECASE),
    )

    SENDER_DOMAIN = re.compile(r"@([^.>\s]+)")

    CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
        ("food", ("restaurant", "food", "uber eats", "doordash", "grubhub", "starbucks", "mcdonald")),
        ("transportation", ("uber", "lyft", "gas", "parking", "metro", "taxi")),
        ("shopping", ("amazon", "target", "walmart", "costco", "purchase")),
        ("utilities", ("electric", "water", "internet", "phone", "utility")),
        ("subscriptions", ("netflix", "spotify", "subscription", "monthly")),
        ("healthcare", ("pharmacy", "doctor", "medical", "health")),
    ]

    def parse(self, message: Dict[str, Any], today: Optional[date_type] = None) -> Optional[ParsedExpense]:
        """
        Parse a Gmail message.

        Args:
            message: Gmail API message resource
            today: Fallback date when the message has no usable Date header

        Returns:
            ParsedExpense, or None for non-financial mail and mail without an amount
        """
        payload = message.get("payload") or {}
        subject = self._header(payload, "Subject") or ""
        sender = self._header(payload, "From") or ""
        body = self.extract_body(payload)

        if not self.is_financial(subject, body, sender):
            logger.debug("Email skipped, not financial", message_id=message.get("id"))
            return None

        amount = self.extract_amount(f"{body} {subject}")
        if amount is None:
            logger.debug("Email skipped, no amount", message_id=message.get("id"))
            return None

        confidence = 1.0
        merchant, from_body = self.extract_merchant(body, sender)
        if merchant == UNKNOWN_MERCHANT:
            confidence -= 0.5
        elif not from_body:
            confidence -= 0.3

        expense_date = self.extract_date(payload)
        if expense_date is None:
            expense_date = today or datetime.utcnow().date()
            confidence -= 0.1

        category = self.categorize(merchant, subject, body)
        if category == DEFAULT_CATEGORY:
            confidence -= 0.2

        parsed = ParsedExpense(
            amount=amount,
            merchant=merchant,
            date=expense_date,
            description=subject or merchant,
            category=category,
            confidence=max(confidence, 0.0),
        )

        logger.info(
            "Email parsed",
            message_id=message.get("id"),
            amount=str(amount),
            merchant=merchant,
            category=category,
            confidence=round(parsed.confidence, 3),
        )

        return parsed

    @staticmethod
    def _header(payload: Dict[str, Any], name: str) -> Optional[str]:
        for header in payload.get("headers") or []:
            if header.get("name") == name:
                return header.get("value")
        return None

    @staticmethod
    def _decode(data: str) -> str:
        """Gmail bodies are base64url without padding."""
        try:
            raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
        except (binascii.Error, ValueError):
            logger.warning("Undecodable email body part")
            return ""
        return raw.decode("utf-8", errors="replace")

    def extract_body(self, payload: Dict[str, Any]) -> str:
        """Body of a single-part message, or the concatenated text/plain parts."""
        data = (payload.get("body") or {}).get("data")
        if data:
            return self._decode(data)

        body = ""
        for part in payload.get("parts") or []:
            part_data = (part.get("body") or {}).get("data")
            if part.get("mimeType") == "text/plain" and part_data:
                body += self._decode(part_data)
        return body

    def is_financial(self, subject: str, body: str, sender: str) -> bool:
        text = f"{subject} {body} {sender}".lower()
        return any(keyword in text for keyword in self.FINANCIAL_KEYWORDS)

    def extract_amount(self, text: str) -> Optional[Decimal]:
        """First positive amount found, trying the patterns in order."""
        for pattern in self.AMOUNT_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            try:
                amount = Decimal(match.group(1).replace(",", ""))
            except InvalidOperation:
                continue
            if amount > 0:
                return amount
        return None

    def extract_merchant(self, body: str, sender: str) -> Tuple[str, bool]:
        """
        Merchant name and whether it came from the body.

        Falls back to the sender's domain, then to UNKNOWN_MERCHANT.
        """
        for pattern in self.MERCHANT_PATTERNS:
            match = pattern.search(body)
            if match and match.group(1).strip():
                return match.group(1).strip(), True

        domain = self.SENDER_DOMAIN.search(sender)
        if domain:
            return re.sub(r"[_-]", " ", domain.group(1)).upper(), False

        return UNKNOWN_MERCHANT, False

    def extract_date(self, payload: Dict[str, Any]) -> Optional[date_type]:
        header = self._header(payload, "Date")
        if not header:
            return None
        try:
            return parsedate_to_datetime(header).date()
        except (TypeError, ValueError):
            logger.warning("Unparseable email date", date_header=header)
            return None

    def categorize(self, merchant: str, subject: str, body: str) -> str:
        text = f"{merchant} {subject} {body}".lower()
        for category, keywords in self.CATEGORY_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return category
        return DEFAULT_CATEGORY


_parser = EmailExpenseParser()


def parse_email_to_expense(
    message: Dict[str, Any], today: Optional[date_type] = None
) -> Optional[ParsedExpense]:
    """Parse a Gmail message with the shared parser."""
    return _parser.parse(message, today)
