"""Tests for integration API endpoints."""

import base64

import pytest
from decimal import Decimal
from httpx import AsyncClient

from financy.routes.integrations import limiter


def encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate limit counters are shared by every test client."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.mark.asyncio
class TestIntegrationExpenseRoutes:
    """Test expenses pushed by iPhone shortcuts and email scrapers."""

    async def test_describe_endpoint(self, async_client: AsyncClient):
        response = await async_client.get("/api/integrations/expenses")

        assert response.status_code == 200
        data = response.json()
        assert data["sources"] == ["iphone", "email"]
        assert "currency" in data["optional_fields"]

    async def test_iphone_expense(self, async_client: AsyncClient, test_user, food_category):
        response = await async_client.post(
            f"/api/integrations/expenses?user_id={test_user.id}",
            json={
                "amount": "8.40",
                "description": "Sandwich",
                "source": "iphone",
                "category": "foo",
                "payment_method": "bizum",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["category"] == "Food"
        assert data["source"] == "iphone"
        assert data["needs_review"] is False
        assert Decimal(data["amount"]) == Decimal("8.40")

    async def test_email_expense_without_confidence_needs_review(
        self, async_client: AsyncClient, test_user
    ):
        response = await async_client.post(
            f"/api/integrations/expenses?user_id={test_user.id}",
            json={"amount": "19.99", "description": "Order", "source": "email"},
        )

        assert response.status_code == 201
        assert response.json()["needs_review"] is True
        assert response.json()["category"] is None

    async def test_invalid_source(self, async_client: AsyncClient, test_user):
        response = await async_client.post(
            f"/api/integrations/expenses?user_id={test_user.id}",
            json={"amount": "1", "description": "x", "source": "fax"},
        )

        assert response.status_code == 422

    async def test_rate_limited(self, async_client: AsyncClient, test_user):
        payload = {"amount": "1", "description": "Gum", "source": "iphone"}
        statuses = [
            (
                await async_client.post(
                    f"/api/integrations/expenses?user_id={test_user.id}", json=payload
                )
            ).status_code
            for _ in range(31)
        ]

        assert statuses[:30] == [201] * 30
        assert statuses[30] == 429


@pytest.mark.asyncio
class TestEmailImportRoutes:
    """Test the Gmail message import."""

    async def test_import_receipt(self, async_client: AsyncClient, test_user, food_category):
        message = {
            "id": "18c2f0a",
            "payload": {
                "headers": [
                    {"name": "Subject", "value": "Your receipt"},
                    {"name": "From", "value": "Alerts <alerts@mybank.com>"},
                    {"name": "Date", "value": "Mon, 03 Feb 2025 10:15:00 +0000"},
                ],
                "body": {"data": encode("You paid $5.75 at Starbucks on 02/03")},
            },
        }

        response = await async_client.post(
            f"/api/integrations/email?user_id={test_user.id}", json={"message": message}
        )

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["amount"]) == Decimal("5.75")
        assert data["category"] == "Food"
        assert data["source"] == "email"
        assert data["needs_review"] is False

        listed = await async_client.get(f"/api/expenses?user_id={test_user.id}")
        stored = listed.json()["items"][0]
        assert stored["merchant"] == "Starbucks"
        assert stored["date"] == "2025-02-03"
        assert stored["currency"] == "USD"

    async def test_low_confidence_flagged(self, async_client: AsyncClient, test_user):
        message = {
            "id": "x1",
            "payload": {"body": {"data": encode("Debit card transaction amount: 20.00")}},
        }

        response = await async_client.post(
            f"/api/integrations/email?user_id={test_user.id}", json={"message": message}
        )

        assert response.status_code == 201
        assert response.json()["needs_review"] is True

    async def test_confidence_override(self, async_client: AsyncClient, test_user):
        message = {
            "id": "x2",
            "payload": {"body": {"data": encode("Debit card transaction amount: 20.00")}},
        }

        response = await async_client.post(
            f"/api/integrations/email?user_id={test_user.id}",
            json={"message": message, "confidence_score": 0.95},
        )

        assert response.json()["needs_review"] is False

    async def test_non_financial_email(self, async_client: AsyncClient, test_user):
        message = {"id": "x3", "payload": {"body": {"data": encode("See you at noon")}}}

        response = await async_client.post(
            f"/api/integrations/email?user_id={test_user.id}", json={"message": message}
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "No expense found in email"
