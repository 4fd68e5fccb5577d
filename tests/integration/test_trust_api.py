"""Integration tests for the trust score endpoint and app basics."""

from decimal import Decimal

import pytest

from civictrust.kernel.models import CampaignFinance, Politician


class TestTrustScoreApi:

    @pytest.mark.asyncio
    async def test_unknown_politician(self, client):
        response = await client.get("/api/trust/politicians/424242/score")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_score_without_data(self, client, db_session):
        politician = Politician(name="Quiet Member")
        db_session.add(politician)
        await db_session.commit()

        response = await client.get(f"/api/trust/politicians/{politician.id}/score")

        assert response.status_code == 200
        body = response.json()
        assert body["politicianId"] == politician.id
        assert body["trustScore"] == 58
        assert body["components"] == {
            "voteConsistency": 50.0,
            "spendPenalty": 0.0,
            "truthPenalty": 10.0,
            "voteCount": 0,
        }

    @pytest.mark.asyncio
    async def test_score_with_finance(self, client, db_session):
        politician = Politician(name="Big Spender")
        db_session.add(politician)
        await db_session.flush()
        db_session.add(CampaignFinance(politician_id=politician.id, amount=Decimal("100000.00")))
        await db_session.commit()

        response = await client.get(f"/api/trust/politicians/{politician.id}/score")

        assert response.json()["trustScore"] == 48


class TestAppBasics:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get("/", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, client):
        response = await client.get("/")
        assert response.headers.get("X-Request-ID")
