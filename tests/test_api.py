"""
HTTP API tests.

Requests run in-process through httpx's ASGI transport against an
application wired to the in-memory claim service.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest

from token_claim.core.config import settings
from token_claim.main import create_application

from conftest import ADMIN, ALICE, BOB, MALLORY, ONE_TOKEN, START_TIME, TOKEN, TREASURY

API_KEY = "test-api-key-0123456789"


@pytest.fixture
async def client(funded_service) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_application(claim_service=funded_service)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Caller": ADMIN}


@pytest.fixture
async def open_event(client, admin_headers, airdrop) -> dict:
    response = await client.post(
        "/api/v1/events",
        json={"token": TOKEN, "merkle_root": airdrop.hex_root, "duration": 1000},
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()


class TestHealth:
    """Tests for probe endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_ready(self, client) -> None:
        response = await client.get("/ready")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_status(self, client) -> None:
        data = (await client.get("/status")).json()

        assert data["administrator"] == ADMIN
        assert data["treasury"] == TREASURY
        assert data["event_index"] == 0


class TestEventEndpoints:
    """Tests for /api/v1/events."""

    @pytest.mark.asyncio
    async def test_create_duration_event(self, open_event, airdrop) -> None:
        assert open_event["index"] == 0
        assert open_event["token"] == TOKEN
        assert open_event["start_time"] == START_TIME
        assert open_event["end_time"] == START_TIME + 1000
        assert open_event["merkle_root"] == airdrop.hex_root

    @pytest.mark.asyncio
    async def test_create_explicit_window(self, client, admin_headers, airdrop) -> None:
        response = await client.post(
            "/api/v1/events",
            json={
                "token": TOKEN,
                "merkle_root": airdrop.hex_root,
                "start_time": 10,
                "end_time": 20,
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["end_time"] == 20

    @pytest.mark.asyncio
    async def test_invalid_window(self, client, admin_headers, airdrop) -> None:
        response = await client.post(
            "/api/v1/events",
            json={
                "token": TOKEN,
                "merkle_root": airdrop.hex_root,
                "start_time": 2**256 - 1,
                "end_time": 0,
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_time_window"

    @pytest.mark.asyncio
    async def test_create_requires_administrator(self, client, airdrop) -> None:
        response = await client.post(
            "/api/v1/events",
            json={"token": TOKEN, "merkle_root": airdrop.hex_root, "duration": 10},
            headers={"X-Caller": MALLORY},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "not_authorized"
        assert (await client.get("/api/v1/events")).json()["event_index"] == 0

    @pytest.mark.asyncio
    async def test_create_without_caller(self, client, airdrop) -> None:
        response = await client.post(
            "/api/v1/events",
            json={"token": TOKEN, "merkle_root": airdrop.hex_root, "duration": 10},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"token": TOKEN, "merkle_root": "0x1234", "duration": 10},
            {"token": "0x1234", "merkle_root": "0x" + "ab" * 32, "duration": 10},
            {"token": TOKEN, "merkle_root": "0x" + "ab" * 32},
            {"token": TOKEN, "merkle_root": "0x" + "ab" * 32, "duration": -1},
            {"token": TOKEN, "merkle_root": "0x" + "ab" * 32, "duration": 10, "start_time": 1},
        ],
    )
    async def test_malformed_request(self, client, admin_headers, payload) -> None:
        response = await client.post("/api/v1/events", json=payload, headers=admin_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_event_count(self, client, open_event) -> None:
        response = await client.get("/api/v1/events")
        assert response.json() == {"event_index": 1}

    @pytest.mark.asyncio
    async def test_event_details(self, client, open_event, proof_for) -> None:
        await client.post(
            "/api/v1/claims",
            json={
                "index": 0,
                "recipient": ALICE,
                "amount": ONE_TOKEN,
                "proof": ["0x" + p.hex() for p in proof_for(ALICE)],
            },
        )

        data = (await client.get("/api/v1/events/0")).json()

        assert data["claimed_count"] == 1
        assert data["claimed_amount"] == ONE_TOKEN
        assert data["is_open"] is True

    @pytest.mark.asyncio
    async def test_unknown_event(self, client) -> None:
        response = await client.get("/api/v1/events/5")

        assert response.status_code == 404
        assert response.json()["error"] == "unknown_event"

    @pytest.mark.asyncio
    async def test_update_root(self, client, admin_headers, open_event, tree_factory) -> None:
        corrected = tree_factory.from_allocations([(MALLORY, ONE_TOKEN)])

        response = await client.put(
            "/api/v1/events/0/merkle-root",
            json={"merkle_root": corrected.hex_root},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["merkle_root"] == corrected.hex_root

    @pytest.mark.asyncio
    async def test_update_root_unknown_event(self, client, admin_headers, airdrop) -> None:
        response = await client.put(
            "/api/v1/events/3/merkle-root",
            json={"merkle_root": airdrop.hex_root},
            headers=admin_headers,
        )
        assert response.status_code == 404


class TestClaimEndpoint:
    """Tests for /api/v1/claims."""

    @pytest.mark.asyncio
    async def test_claim_and_repeat(self, client, open_event, airdrop) -> None:
        payload = {
            "index": 0,
            "recipient": BOB,
            "amount": ONE_TOKEN,
            "proof": airdrop.hex_proof(1),
        }

        response = await client.post("/api/v1/claims", json=payload)

        assert response.status_code == 200
        data = response.json()
        assert data["recipient"] == BOB
        assert data["amount"] == ONE_TOKEN
        assert data["token"] == TOKEN

        status = (await client.get(f"/api/v1/events/0/claims/{BOB}")).json()
        assert status["claimed"] is True

        repeat = await client.post("/api/v1/claims", json=payload)
        assert repeat.status_code == 409
        assert repeat.json()["error"] == "already_claimed"

    @pytest.mark.asyncio
    async def test_invalid_proof(self, client, open_event, airdrop) -> None:
        response = await client.post(
            "/api/v1/claims",
            json={
                "index": 0,
                "recipient": MALLORY,
                "amount": ONE_TOKEN,
                "proof": airdrop.hex_proof(0),
            },
        )

        assert response.status_code == 400
        assert response.json()["error"] == "proof_invalid"

    @pytest.mark.asyncio
    async def test_malformed_proof_element(self, client, open_event) -> None:
        response = await client.post(
            "/api/v1/claims",
            json={"index": 0, "recipient": ALICE, "amount": 1, "proof": ["0xabc"]},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_huge_index(self, client, open_event, airdrop) -> None:
        response = await client.post(
            "/api/v1/claims",
            json={"index": 2**64, "recipient": ALICE, "amount": ONE_TOKEN, "proof": airdrop.hex_proof(0)},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "unknown_event"

        status = await client.get(f"/api/v1/events/{2**64}/claims/{ALICE}")
        assert status.status_code == 200
        assert status.json()["claimed"] is False

        assert (await client.get(f"/api/v1/events/{2**64}")).status_code == 404

    @pytest.mark.asyncio
    async def test_claim_status_unclaimed(self, client, open_event) -> None:
        response = await client.get(f"/api/v1/events/0/claims/{ALICE}")

        assert response.status_code == 200
        assert response.json()["claimed"] is False


class TestTreasuryEndpoints:
    """Tests for /api/v1/treasury."""

    @pytest.mark.asyncio
    async def test_withdraw(self, client, admin_headers) -> None:
        response = await client.post(
            "/api/v1/treasury/withdraw",
            json={"token": TOKEN, "amount": 30 * ONE_TOKEN},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["balance"] == 70 * ONE_TOKEN

        balance = await client.get(f"/api/v1/treasury/{TOKEN}/balances/{ADMIN}")
        assert balance.json()["balance"] == 30 * ONE_TOKEN

    @pytest.mark.asyncio
    async def test_withdraw_too_much(self, client, admin_headers) -> None:
        response = await client.post(
            "/api/v1/treasury/withdraw",
            json={"token": TOKEN, "amount": 101 * ONE_TOKEN},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["error"] == "insufficient_balance"

    @pytest.mark.asyncio
    async def test_withdraw_requires_administrator(self, client) -> None:
        response = await client.post(
            "/api/v1/treasury/withdraw",
            json={"token": TOKEN, "amount": 1},
            headers={"X-Caller": MALLORY},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_deposit(self, client, admin_headers) -> None:
        response = await client.post(
            "/api/v1/treasury/deposit",
            json={"token": TOKEN, "amount": ONE_TOKEN},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["balance"] == 101 * ONE_TOKEN


class TestAPIKeyMiddleware:
    """Tests for the optional API key guard."""

    @pytest.fixture(autouse=True)
    def enable_api_key(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "API_AUTH_ENABLED", True)
        monkeypatch.setattr(settings, "API_KEY", API_KEY)

    @pytest.mark.asyncio
    async def test_admin_route_requires_key(self, client, admin_headers, airdrop) -> None:
        response = await client.post(
            "/api/v1/events",
            json={"token": TOKEN, "merkle_root": airdrop.hex_root, "duration": 10},
            headers=admin_headers,
        )

        assert response.status_code == 401
        assert response.json()["error"] == "not_authenticated"

    @pytest.mark.asyncio
    async def test_wrong_key_rejected(self, client, admin_headers) -> None:
        response = await client.post(
            "/api/v1/treasury/deposit",
            json={"token": TOKEN, "amount": 1},
            headers={**admin_headers, "X-API-Key": "wrong-key-000000000"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_valid_key_accepted(self, client, admin_headers, airdrop) -> None:
        response = await client.post(
            "/api/v1/events",
            json={"token": TOKEN, "merkle_root": airdrop.hex_root, "duration": 10},
            headers={**admin_headers, "X-API-Key": API_KEY},
        )
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_claims_and_reads_stay_open(self, client) -> None:
        read = await client.get("/api/v1/events")
        assert read.status_code == 200

        claim = await client.post(
            "/api/v1/claims",
            json={"index": 0, "recipient": ALICE, "amount": 1, "proof": []},
        )
        assert claim.status_code == 404
