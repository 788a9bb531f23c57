"""
Integration tests for the API layer.

Use cases and collaborators are replaced through dependency overrides, so
no database, RabbitMQ or payment gateway is needed.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_cancel_checkout_use_case,
    get_confirm_payment_use_case,
    get_feed_sessions,
    get_purchase_sponsorship_use_case,
)
from src.api.main import app
from src.application.cache.ttl_cache import TTLCache
from src.application.errors import (
    ListingNotFoundError,
    SponsorshipConflictError,
    SponsorshipNotFoundError,
    SponsorshipValidationError,
    UpstreamUnavailableError,
)
from src.application.interfaces.listing_store import ListingQueryResult
from src.application.services.agent_resolver import AgentResolver
from src.application.services.sponsorship_ledger import SponsorshipLedger
from src.application.use_cases.browse_feed import FeedSessions
from src.application.use_cases.cancel_sponsorship_checkout import CancelSponsorshipCheckoutOutput
from src.application.use_cases.confirm_sponsorship_payment import ConfirmSponsorshipPaymentOutput
from src.application.use_cases.purchase_sponsorship import PurchaseSponsorshipOutput
from src.config import settings
from src.domain.entities.agent_info import AgentInfo
from src.domain.entities.listing import Listing, Location
from src.domain.entities.sponsorship import Sponsorship
from src.domain.enums.sponsorship_status import SponsorshipStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _make_store(listings: list[Listing]) -> MagicMock:
    store = MagicMock()
    store.query = AsyncMock(
        return_value=ListingQueryResult(items=listings, estimated_total=len(listings))
    )
    return store


def _make_feed_sessions(
    listings: list[Listing],
    sponsorships: list[Sponsorship] | None = None,
    store: MagicMock | None = None,
) -> FeedSessions:
    store = store or _make_store(listings)
    repo = MagicMock()
    repo.find_active = AsyncMock(return_value=sponsorships or [])
    identity = MagicMock()
    identity.resolve = AsyncMock(return_value=AgentInfo(name="Fatou Sarr", is_verified=True))
    return FeedSessions(store, SponsorshipLedger(repo), AgentResolver(identity), TTLCache())


def _listings(count: int) -> list[Listing]:
    now = _utcnow()
    return [
        Listing(
            title=f"Appartement {i}",
            price=Decimal("250000"),
            location=Location(city="Dakar", neighborhood="Plateau", country="SN"),
            images=("/img/1.jpg",),
            owner_id="owner-1",
            created_at=now - timedelta(days=i),
        )
        for i in range(count)
    ]


@pytest.fixture()
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestFeedRoutes:
    def test_open_feed_returns_first_page(self, client: TestClient) -> None:
        listings = _listings(3)
        now = _utcnow()
        boosted = Sponsorship(
            listing_id=listings[2].id,
            boost_level=3,
            sponsored_from=now - timedelta(hours=1),
            sponsored_until=now + timedelta(days=7),
            status=SponsorshipStatus.ACTIVE,
            confirmed_at=now - timedelta(hours=1),
        )
        sessions = _make_feed_sessions(listings, [boosted])
        app.dependency_overrides[get_feed_sessions] = lambda: sessions

        response = client.post("/feed/sessions", params={"mode": "rent", "page_size": 2})

        assert response.status_code == 201
        data = response.json()
        assert data["applied"] is True
        assert data["has_more"] is True
        assert [item["title"] for item in data["items"]] == ["Appartement 2", "Appartement 0"]
        assert data["items"][0]["is_sponsored"] is True
        assert data["items"][0]["boost_level"] == 3
        assert data["items"][0]["agent"]["name"] == "Fatou Sarr"
        assert data["items"][1]["is_new"] is True

    def test_page_size_above_limit_is_rejected(self, client: TestClient) -> None:
        app.dependency_overrides[get_feed_sessions] = lambda: _make_feed_sessions([])

        response = client.post(
            "/feed/sessions", params={"page_size": settings.feed_max_page_size + 1}
        )

        assert response.status_code == 422

    def test_load_more_and_refresh(self, client: TestClient) -> None:
        sessions = _make_feed_sessions(_listings(5))
        app.dependency_overrides[get_feed_sessions] = lambda: sessions
        session_id = client.post("/feed/sessions", params={"page_size": 2}).json()["session_id"]

        more = client.get(f"/feed/sessions/{session_id}/more")
        refreshed = client.post(f"/feed/sessions/{session_id}/refresh")

        assert more.status_code == 200
        assert more.json()["offset"] == 2
        assert [i["title"] for i in more.json()["items"]] == ["Appartement 2", "Appartement 3"]
        assert refreshed.status_code == 200
        assert refreshed.json()["from_cache"] is False

    def test_unknown_session_returns_404(self, client: TestClient) -> None:
        app.dependency_overrides[get_feed_sessions] = lambda: _make_feed_sessions([])

        response = client.get(f"/feed/sessions/{uuid4()}/more")

        assert response.status_code == 404

    def test_upstream_failure_returns_503(self, client: TestClient) -> None:
        store = MagicMock()
        store.query = AsyncMock(side_effect=ConnectionError("db down"))
        sessions = _make_feed_sessions([], store=store)
        app.dependency_overrides[get_feed_sessions] = lambda: sessions

        response = client.post("/feed/sessions")

        assert response.status_code == 503

    def test_close_session(self, client: TestClient) -> None:
        sessions = _make_feed_sessions(_listings(2))
        app.dependency_overrides[get_feed_sessions] = lambda: sessions
        session_id = client.post("/feed/sessions").json()["session_id"]

        assert client.delete(f"/feed/sessions/{session_id}").status_code == 204
        assert client.get(f"/feed/sessions/{session_id}/more").status_code == 404


class TestPurchaseSponsorshipRoute:
    def _override(self, **execute_kwargs) -> MagicMock:  # type: ignore[no-untyped-def]
        use_case = MagicMock()
        use_case.execute = AsyncMock(**execute_kwargs)
        app.dependency_overrides[get_purchase_sponsorship_use_case] = lambda: use_case
        return use_case

    def test_returns_checkout(self, client: TestClient) -> None:
        sponsorship_id = uuid4()
        until = _utcnow() + timedelta(days=15)
        use_case = self._override(
            return_value=PurchaseSponsorshipOutput(
                sponsorship_id=sponsorship_id,
                checkout_url="https://pay.example/cs_1",
                session_id="cs_1",
                boost_level=2,
                duration_days=15,
                price_amount=Decimal("600000"),
                currency="XOF",
                sponsored_until=until,
            )
        )
        listing_id = uuid4()

        response = client.post(
            "/sponsorships",
            json={"listing_id": str(listing_id), "boost_level": 2, "duration_days": 15},
            headers={"X-User-Id": "user-1"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["url"] == "https://pay.example/cs_1"
        assert data["status"] == "pending"
        sent = use_case.execute.await_args.args[0]
        assert sent.requester_id == "user-1"
        assert sent.listing_id == listing_id

    def test_missing_user_header_is_rejected(self, client: TestClient) -> None:
        self._override()

        response = client.post(
            "/sponsorships",
            json={"listing_id": str(uuid4()), "boost_level": 1, "duration_days": 7},
        )

        assert response.status_code == 422

    @pytest.mark.parametrize(
        ("error", "expected_status"),
        [
            (SponsorshipValidationError("bad duration"), 422),
            (ListingNotFoundError(uuid4()), 404),
            (UpstreamUnavailableError("payment_gateway"), 503),
        ],
    )
    def test_error_mapping(self, client: TestClient, error: Exception, expected_status: int) -> None:
        self._override(side_effect=error)

        response = client.post(
            "/sponsorships",
            json={"listing_id": str(uuid4()), "boost_level": 1, "duration_days": 7},
            headers={"X-User-Id": "user-1"},
        )

        assert response.status_code == expected_status

    def test_conflict_carries_existing_expiry(self, client: TestClient) -> None:
        until = datetime(2024, 7, 1, tzinfo=timezone.utc)
        self._override(side_effect=SponsorshipConflictError(uuid4(), until))

        response = client.post(
            "/sponsorships",
            json={"listing_id": str(uuid4()), "boost_level": 1, "duration_days": 7},
            headers={"X-User-Id": "user-1"},
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["sponsored_until"] == until.isoformat()
        assert "2024-07-01" in detail["message"]


class TestPaymentWebhook:
    def _override_confirm(self, **execute_kwargs) -> MagicMock:  # type: ignore[no-untyped-def]
        use_case = MagicMock()
        use_case.execute = AsyncMock(**execute_kwargs)
        app.dependency_overrides[get_confirm_payment_use_case] = lambda: use_case
        return use_case

    def _override_cancel(self, **execute_kwargs) -> MagicMock:  # type: ignore[no-untyped-def]
        use_case = MagicMock()
        use_case.execute = AsyncMock(**execute_kwargs)
        app.dependency_overrides[get_cancel_checkout_use_case] = lambda: use_case
        return use_case

    def test_paid_session_activates(self, client: TestClient) -> None:
        sponsorship_id = uuid4()
        now = _utcnow()
        confirm = self._override_confirm(
            return_value=ConfirmSponsorshipPaymentOutput(
                sponsorship_id=sponsorship_id,
                listing_id=uuid4(),
                status=SponsorshipStatus.ACTIVE,
                activated=True,
                sponsored_from=now,
                sponsored_until=now + timedelta(days=7),
            )
        )
        self._override_cancel()

        response = client.post(
            "/webhooks/payments",
            json={
                "type": "checkout.session.completed",
                "session_id": "cs_1",
                "payment_status": "paid",
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "accepted": True,
            "sponsorship_id": str(sponsorship_id),
            "status": "active",
            "changed": True,
        }
        assert confirm.execute.await_args.args[0].session_id == "cs_1"

    def test_unpaid_completion_is_rejected(self, client: TestClient) -> None:
        confirm = self._override_confirm()
        self._override_cancel()

        response = client.post(
            "/webhooks/payments",
            json={
                "type": "checkout.session.completed",
                "session_id": "cs_1",
                "payment_status": "unpaid",
            },
        )

        assert response.status_code == 400
        confirm.execute.assert_not_called()

    def test_expired_session_cancels_pending(self, client: TestClient) -> None:
        sponsorship_id = uuid4()
        self._override_confirm()
        cancel = self._override_cancel(
            return_value=CancelSponsorshipCheckoutOutput(
                sponsorship_id=sponsorship_id,
                status=SponsorshipStatus.CANCELLED,
                cancelled=True,
            )
        )

        response = client.post(
            "/webhooks/payments",
            json={"type": "checkout.session.expired", "session_id": "cs_2"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert cancel.execute.await_args.args[0].reason == "expired"

    def test_unknown_session_returns_404(self, client: TestClient) -> None:
        self._override_confirm(side_effect=SponsorshipNotFoundError("cs_missing"))
        self._override_cancel()

        response = client.post(
            "/webhooks/payments",
            json={
                "type": "checkout.session.completed",
                "session_id": "cs_missing",
                "payment_status": "paid",
            },
        )

        assert response.status_code == 404

    def test_storage_outage_returns_503(self, client: TestClient) -> None:
        self._override_confirm()
        self._override_cancel(
            side_effect=UpstreamUnavailableError("sponsorship_storage", ConnectionError("db down"))
        )

        response = client.post(
            "/webhooks/payments",
            json={"type": "checkout.session.expired", "session_id": "cs_2"},
        )

        assert response.status_code == 503

    def test_wrong_secret_is_rejected(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "payment_webhook_secret", "s3cret")
        confirm = self._override_confirm()
        self._override_cancel()

        response = client.post(
            "/webhooks/payments",
            json={"type": "checkout.session.expired", "session_id": "cs_2"},
            headers={"X-Webhook-Secret": "guess"},
        )

        assert response.status_code == 401
        confirm.execute.assert_not_called()
