"""HTTP flow through the FastAPI app, backed by the per-test SQLite database.

Tokens are minted locally with the shared test secret; the database
dependencies are overridden so every request uses the test's session factory.
"""

from collections.abc import AsyncIterator
from datetime import timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.main import app
from src.nb_common.database import get_db_session, get_session_factory
from src.nb_common.datetime_utils import utc_now
from src.nb_common.enums import UserRole
from src.nb_gateway.auth.jwt_handler import create_access_token

ADMIN = {"Authorization": f"Bearer {create_access_token('admin-1', UserRole.ADMIN)}"}
SUBADMIN = {"Authorization": f"Bearer {create_access_token('sub-1', UserRole.SUBADMIN)}"}
PLAYER = {"Authorization": f"Bearer {create_access_token('p1', UserRole.PLAYER)}"}


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncClient]:
    async def _session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test/api/v1") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _open_and_fund(client: AsyncClient, account_id: str, amount: int) -> None:
    resp = await client.post("/admin/accounts", json={"account_id": account_id}, headers=SUBADMIN)
    assert resp.status_code == 200
    if amount:
        resp = await client.post(
            f"/admin/accounts/{account_id}/adjustments",
            json={"delta_cents": amount, "remarks": "opening credit"},
            headers=SUBADMIN,
        )
        assert resp.status_code == 200


async def _create_market(client: AsyncClient) -> str:
    now = utc_now()
    resp = await client.post(
        "/markets",
        json={
            "name": "Kalyan",
            "opening_time": (now - timedelta(minutes=5)).isoformat(),
            "closing_time": (now + timedelta(hours=2)).isoformat(),
            "game_types": [
                {"game_type": "JODI", "odds_bps": 900_000},
                {"game_type": "HURF", "odds_bps": 90_000},
            ],
        },
        headers=ADMIN,
    )
    assert resp.status_code == 200
    body = resp.json()["data"]
    assert body["status"] == "OPEN"
    hurf = next(g for g in body["game_types"] if g["game_type"] == "HURF")
    assert hurf["both_odds_bps"] == 720_000
    return str(body["id"])


class TestAuth:
    async def test_missing_token_is_401(self, client: AsyncClient) -> None:
        resp = await client.get("/accounts/me")
        assert resp.status_code == 401
        body = resp.json()
        assert body["code"] == 1001
        assert body["data"] is None
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_player_cannot_use_staff_endpoints(self, client: AsyncClient) -> None:
        resp = await client.post("/admin/accounts", json={"account_id": "x"}, headers=PLAYER)
        assert resp.status_code == 403
        assert resp.json()["code"] == 1002

    async def test_subadmin_cannot_create_markets(self, client: AsyncClient) -> None:
        resp = await client.post("/markets", json={}, headers=SUBADMIN)
        assert resp.status_code in (403, 422)
        assert (await client.get("/markets", headers=SUBADMIN)).status_code == 200


class TestWalletFlow:
    async def test_deposit_then_approval(self, client: AsyncClient) -> None:
        await _open_and_fund(client, "p1", 0)

        resp = await client.post("/wallet/deposits", json={"amount_cents": 5_000}, headers=PLAYER)
        assert resp.status_code == 200
        txn = resp.json()["data"]
        assert txn["status"] == "PENDING"

        me = (await client.get("/accounts/me", headers=PLAYER)).json()["data"]
        assert me["balance_cents"] == 0

        queue = await client.get("/admin/transactions?status=PENDING", headers=SUBADMIN)
        assert [t["id"] for t in queue.json()["data"]["items"]] == [txn["id"]]

        resp = await client.post(f"/admin/transactions/{txn['id']}/approve", headers=SUBADMIN)
        assert resp.status_code == 200
        assert resp.json()["data"]["approved_by"] == "sub-1"

        me = (await client.get("/accounts/me", headers=PLAYER)).json()["data"]
        assert me["balance_cents"] == 5_000
        assert me["balance_display"] == "$50.00"

        again = await client.post(f"/admin/transactions/{txn['id']}/reject", headers=SUBADMIN)
        assert again.status_code == 409
        assert again.json()["code"] == 2005

    async def test_self_approval_is_forbidden(self, client: AsyncClient) -> None:
        await _open_and_fund(client, "sub-1", 0)
        resp = await client.post("/wallet/deposits", json={"amount_cents": 100}, headers=SUBADMIN)
        txn_id = resp.json()["data"]["id"]

        resp = await client.post(f"/admin/transactions/{txn_id}/approve", headers=SUBADMIN)

        assert resp.status_code == 403
        assert resp.json()["code"] == 2006

    async def test_non_positive_amount_rejected(self, client: AsyncClient) -> None:
        await _open_and_fund(client, "p1", 0)
        resp = await client.post("/wallet/withdrawals", json={"amount_cents": 0}, headers=PLAYER)
        assert resp.status_code == 422

    async def test_transaction_history_pagination(self, client: AsyncClient) -> None:
        await _open_and_fund(client, "p1", 0)
        for amount in (100, 200, 300):
            await client.post("/wallet/deposits", json={"amount_cents": amount}, headers=PLAYER)

        history = "/accounts/me/transactions"
        first = (await client.get(history, params={"limit": 2}, headers=PLAYER)).json()["data"]
        assert [t["amount_cents"] for t in first["items"]] == [300, 200]
        assert first["has_more"] is True

        second = (
            await client.get(
                history,
                params={"limit": 2, "cursor": first["next_cursor"]},
                headers=PLAYER,
            )
        ).json()["data"]
        assert [t["amount_cents"] for t in second["items"]] == [100]
        assert second["has_more"] is False


class TestBettingFlow:
    async def test_bet_declare_and_payout(self, client: AsyncClient) -> None:
        await _open_and_fund(client, "p1", 1_000)
        market_id = await _create_market(client)

        resp = await client.post(
            "/bets/market",
            json={
                "market_id": market_id,
                "game_type": "JODI",
                "selection": "45",
                "amount_cents": 100,
            },
            headers=PLAYER,
        )
        assert resp.status_code == 200
        bet = resp.json()["data"]
        assert bet["potential_winning_cents"] == 9_000
        assert bet["odds_display"] == "x90"

        early = await client.post(
            f"/admin/markets/{market_id}/declare-result",
            json={"result_value": "45"},
            headers=ADMIN,
        )
        assert early.status_code == 422
        assert early.json()["code"] == 5003

        assert (await client.post(f"/markets/{market_id}/close", headers=ADMIN)).status_code == 200

        denied = await client.post(
            f"/admin/markets/{market_id}/declare-result",
            json={"result_value": "45"},
            headers=SUBADMIN,
        )
        assert denied.status_code == 403

        resp = await client.post(
            f"/admin/markets/{market_id}/declare-result",
            json={"result_value": "45"},
            headers=ADMIN,
        )
        assert resp.status_code == 200
        report = resp.json()["data"]
        assert report["won"] == 1
        assert report["total_paid_cents"] == 9_000
        assert report["complete"] is True

        me = (await client.get("/accounts/me", headers=PLAYER)).json()["data"]
        assert me["balance_cents"] == 9_900

        mine = (await client.get(f"/bets/{bet['id']}", headers=PLAYER)).json()["data"]
        assert mine["status"] == "WON"

        staff_view = await client.get(f"/admin/markets/{market_id}/bets", headers=SUBADMIN)
        assert [b["id"] for b in staff_view.json()["data"]["items"]] == [bet["id"]]

        reconcile = await client.get("/admin/accounts/p1/reconcile", headers=SUBADMIN)
        assert reconcile.json()["data"]["consistent"] is True

    async def test_insufficient_funds_envelope(self, client: AsyncClient) -> None:
        await _open_and_fund(client, "p1", 50)
        market_id = await _create_market(client)

        resp = await client.post(
            "/bets/market",
            json={
                "market_id": market_id,
                "game_type": "HURF",
                "selection": "0-5",
                "amount_cents": 100,
            },
            headers=PLAYER,
        )

        assert resp.status_code == 422
        assert resp.json()["code"] == 2001
        assert (await client.get("/bets", headers=PLAYER)).json()["data"]["items"] == []

    async def test_unknown_collection_is_422(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/admin/lotteries/x/declare-result", json={"result_value": "45"}, headers=ADMIN
        )
        assert resp.status_code == 422


class TestMarketAdmin:
    async def test_update_game_type(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        path = f"/markets/{market_id}/game-types/HURF"

        denied = await client.patch(path, json={"is_active": False}, headers=SUBADMIN)
        assert denied.status_code == 403

        resp = await client.patch(
            path, json={"odds_bps": 95_000, "is_active": False}, headers=ADMIN
        )
        assert resp.status_code == 200
        hurf = next(g for g in resp.json()["data"]["game_types"] if g["game_type"] == "HURF")
        assert hurf["odds_bps"] == 95_000
        assert hurf["both_odds_bps"] == 720_000
        assert hurf["is_active"] is False

        unknown = await client.patch(
            f"/markets/{market_id}/game-types/LOTTO", json={}, headers=ADMIN
        )
        assert unknown.status_code == 422
