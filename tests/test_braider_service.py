# =============================================================================
# tests/test_braider_service.py - Braider, Catalog & Rating Tests
# =============================================================================

import pytest

from app.exceptions import ConflictError, NotFoundError, OwnershipError, ValidationFailedError
from core.models.braider import BraiderProfileUpdate, BraiderRegister, ServiceCreate, ServiceUpdate
from core.models.rating import RatingCreate
from core.services.braider_service import BraiderService
from core.services.catalog_service import CatalogService
from core.services.rating_service import RatingService

LISBON = (38.7223, -9.1393)


@pytest.fixture
def braiders(db, braider_user_id):
    return db.seed(
        "braiders",
        {
            "id": "lisbon",
            "user_id": braider_user_id,
            "name": "Ana",
            "contact_email": "ana@example.com",
            "status": "approved",
            "district": "Lisboa",
            "concelho": "Lisboa",
            "latitude": 38.7250,
            "longitude": -9.1500,
            "specialties": ["Box Braids", "Twists"],
            "average_rating": 4.5,
            "total_reviews": 10,
        },
        {
            "id": "sintra",
            "name": "Bia",
            "status": "approved",
            "district": "Lisboa",
            "concelho": "Sintra",
            "latitude": 38.8029,
            "longitude": -9.3817,
            "specialties": ["Cornrows"],
            "average_rating": 4.9,
            "total_reviews": 3,
        },
        {
            "id": "porto",
            "name": "Carla",
            "status": "approved",
            "district": "Porto",
            "concelho": "Porto",
            "latitude": 41.1579,
            "longitude": -8.6291,
            "average_rating": 5.0,
            "total_reviews": 1,
        },
        {
            "id": "pending",
            "name": "Dina",
            "status": "pending",
            "district": "Lisboa",
            "latitude": 38.7223,
            "longitude": -9.1393,
        },
        {
            "id": "no-coords",
            "name": "Eva",
            "status": "approved",
            "district": "Lisboa",
        },
    )


# =============================================================================
# Registration & Profile
# =============================================================================

class TestRegistration:
    def _payload(self, **overrides):
        data = {"name": "Fátima", "contact_email": "fatima@example.com", "district": "Setúbal", "concelho": "Almada"}
        data.update(overrides)
        return BraiderRegister(**data)

    def test_new_profile_is_pending(self, db, customer_id):
        braider = BraiderService.register_braider(customer_id, self._payload())

        assert braider["status"] == "pending"
        assert braider["user_id"] == customer_id
        assert braider["total_reviews"] == 0

    def test_duplicate_email(self, db, braiders, customer_id):
        with pytest.raises(ConflictError):
            BraiderService.register_braider(customer_id, self._payload(contact_email="ana@example.com"))


class TestProfileUpdate:
    def test_owner_updates_bio(self, braiders, braider_user_id):
        updated = BraiderService.update_profile(braider_user_id, "lisbon", BraiderProfileUpdate(bio="Nova bio"))
        assert updated["bio"] == "Nova bio"

    def test_price_range_checked_against_current(self, db, braiders, braider_user_id):
        braiders[0]["max_price"] = 50

        with pytest.raises(ValidationFailedError):
            BraiderService.update_profile(braider_user_id, "lisbon", BraiderProfileUpdate(min_price=80))

    def test_non_owner_rejected(self, braiders, customer_id):
        with pytest.raises(OwnershipError):
            BraiderService.update_profile(customer_id, "lisbon", BraiderProfileUpdate(bio="x"))


class TestGetBraider:
    """Tests for profile visibility."""

    def test_public_view_hides_private_columns(self, db, braiders):
        db.seed("services", {"braider_id": "lisbon", "name": "Box Braids", "price": 60, "is_available": True})

        braider = BraiderService.get_braider("lisbon")

        assert "contact_email" not in braider
        assert braider["name"] == "Ana"
        assert [s["name"] for s in braider["services"]] == ["Box Braids"]

    def test_pending_profile_hidden_from_public(self, braiders, customer_id):
        with pytest.raises(NotFoundError):
            BraiderService.get_braider("pending")
        with pytest.raises(NotFoundError):
            BraiderService.get_braider("pending", viewer_id=customer_id, viewer_role="customer")

    def test_owner_sees_own_pending_profile(self, braiders, braider_user_id):
        braiders[3]["user_id"] = braider_user_id
        braiders[3]["contact_email"] = "dina@example.com"

        braider = BraiderService.get_braider("pending", viewer_id=braider_user_id, viewer_role="braider")

        assert braider["contact_email"] == "dina@example.com"

    def test_admin_sees_any_profile(self, braiders, admin_id):
        braider = BraiderService.get_braider("pending", viewer_id=admin_id, viewer_role="admin")
        assert braider["status"] == "pending"


class TestStatus:
    def test_approve(self, braiders, admin_id):
        result = BraiderService.set_status(admin_id, "pending", "approved")

        assert result["braider"]["status"] == "approved"
        assert result["braider"]["reviewed_by"] == admin_id
        assert result["message"] == "Trancista aprovada com sucesso"

    def test_invalid_status(self, braiders, admin_id):
        with pytest.raises(ValidationFailedError):
            BraiderService.set_status(admin_id, "pending", "suspended")

    def test_unknown_braider(self, db, admin_id):
        with pytest.raises(NotFoundError):
            BraiderService.set_status(admin_id, "ghost", "approved")


# =============================================================================
# Search
# =============================================================================

class TestFindNearby:
    """Tests for the radius search."""

    def test_sorted_by_distance_and_approved_only(self, braiders):
        result = BraiderService.find_nearby(*LISBON, radius_km=50)

        ids = [b["id"] for b in result["braiders"]]
        assert ids == ["lisbon", "sintra"]
        assert result["braiders"][0]["distance_km"] < result["braiders"][1]["distance_km"]
        assert result["search"]["found"] == 2

    def test_radius_excludes_far_braiders(self, braiders):
        result = BraiderService.find_nearby(*LISBON, radius_km=5)
        assert [b["id"] for b in result["braiders"]] == ["lisbon"]

    def test_outside_portugal(self, braiders):
        with pytest.raises(ValidationFailedError):
            BraiderService.find_nearby(40.4168, -3.7038)

    def test_pagination(self, braiders):
        result = BraiderService.find_nearby(*LISBON, radius_km=500, page=2, limit=2)

        assert [b["id"] for b in result["braiders"]] == ["porto"]
        assert result["pagination"]["total"] == 3
        assert result["pagination"]["has_next"] is False


class TestFindByLocation:
    def test_best_rated_first(self, braiders):
        result = BraiderService.find_by_location("Lisboa")

        assert [b["id"] for b in result["braiders"]][:2] == ["sintra", "lisbon"]
        assert all(b["status"] == "approved" for b in result["braiders"])

    def test_concelho_filter(self, braiders):
        result = BraiderService.find_by_location("Lisboa", concelho="Sintra")
        assert [b["id"] for b in result["braiders"]] == ["sintra"]


class TestListBraiders:
    def test_specialty_is_case_insensitive(self, braiders):
        rows, total = BraiderService.list_braiders(specialty="box")
        assert total == 1
        assert rows[0]["id"] == "lisbon"


# =============================================================================
# Catalog
# =============================================================================

class TestCatalog:
    def test_create_and_update(self, braiders, braider_user_id):
        service = CatalogService.create_service(
            braider_user_id,
            "lisbon",
            ServiceCreate(name="Box braids", price=80, duration_minutes=240),
        )

        updated = CatalogService.update_service(braider_user_id, service["id"], ServiceUpdate(price=90))

        assert updated["price"] == 90
        assert updated["braider_id"] == "lisbon"

    def test_other_user_cannot_delete(self, db, braiders, customer_id):
        db.seed("services", {"id": "svc", "braider_id": "lisbon", "price": 10})

        with pytest.raises(OwnershipError):
            CatalogService.delete_service(customer_id, "svc")

        assert db.rows("services", id="svc")

    def test_missing_service(self, db, braider_user_id):
        with pytest.raises(NotFoundError):
            CatalogService.update_service(braider_user_id, "ghost", ServiceUpdate(price=1))


# =============================================================================
# Ratings
# =============================================================================

class TestCreateRating:
    """Tests for RatingService.create_rating."""

    @pytest.fixture(autouse=True)
    def stats_rpc(self, db):
        db.rpc_handlers["update_braider_rating_stats"] = lambda params: None

    def test_verified_rating(self, db, braiders, customer_id, redis_mock):
        # Arrange: a completed booking made by the client
        db.seed("bookings", {"id": "bk", "client_id": customer_id, "braider_id": "lisbon", "status": "completed"})
        db.seed("users", {"id": customer_id, "name": "Maria", "email": "maria@example.com"})

        # Act
        rating = RatingService.create_rating(
            customer_id, RatingCreate(braider_id="lisbon", booking_id="bk", overall_rating=5)
        )

        # Assert
        assert rating["is_verified"] is True
        assert rating["client_name"] == "Maria"
        assert rating["status"] == "active"
        assert ("update_braider_rating_stats", {"p_braider_id": "lisbon"}) in db.rpc_calls
        redis_mock.publish.assert_called_once()

    def test_anonymous_name_fallback(self, db, braiders, customer_id):
        rating = RatingService.create_rating(customer_id, RatingCreate(braider_id="sintra", overall_rating=3))

        assert rating["client_name"] == "Cliente Anônimo"
        assert rating["is_verified"] is False

    def test_booking_must_be_completed(self, db, braiders, customer_id):
        db.seed("bookings", {"id": "bk", "client_id": customer_id, "braider_id": "lisbon", "status": "confirmed"})

        with pytest.raises(ValidationFailedError):
            RatingService.create_rating(customer_id, RatingCreate(braider_id="lisbon", booking_id="bk", overall_rating=5))

    def test_booking_must_belong_to_client(self, db, braiders, customer_id):
        db.seed("bookings", {"id": "bk", "client_id": "someone-else", "braider_id": "lisbon", "status": "completed"})

        with pytest.raises(OwnershipError):
            RatingService.create_rating(customer_id, RatingCreate(braider_id="lisbon", booking_id="bk", overall_rating=5))

    def test_booking_rated_once(self, db, braiders, customer_id):
        db.seed("bookings", {"id": "bk", "client_id": customer_id, "braider_id": "lisbon", "status": "completed"})
        db.seed("ratings", {"booking_id": "bk", "status": "active"})

        with pytest.raises(ConflictError):
            RatingService.create_rating(customer_id, RatingCreate(braider_id="lisbon", booking_id="bk", overall_rating=5))

    def test_unknown_braider(self, db, customer_id):
        with pytest.raises(NotFoundError):
            RatingService.create_rating(customer_id, RatingCreate(braider_id="ghost", overall_rating=5))

    def test_stats_failure_keeps_rating(self, db, braiders, customer_id):
        # Arrange: the stats function is missing, so the RPC raises
        db.rpc_handlers.pop("update_braider_rating_stats")

        # Act
        rating = RatingService.create_rating(customer_id, RatingCreate(braider_id="lisbon", overall_rating=4))

        # Assert: the rating is returned and stored exactly once
        assert rating["overall_rating"] == 4
        assert len(db.rows("ratings")) == 1
        assert db.rpc_calls[-1][0] == "update_braider_rating_stats"


class TestListRatings:
    def test_pagination_and_stats(self, db):
        db.seed(
            "ratings",
            *[{"braider_id": "lisbon", "status": "active", "created_at": f"2025-03-0{i}T10:00:00Z"} for i in range(1, 6)],
            {"braider_id": "lisbon", "status": "hidden", "created_at": "2025-03-09T10:00:00Z"},
        )
        db.seed("braider_rating_stats", {"braider_id": "lisbon", "average_rating": 4.6})

        result = RatingService.list_ratings(braider_id="lisbon", limit=2, include_stats=True)

        assert result["pagination"]["total"] == 5
        assert result["pagination"]["has_more"] is True
        assert result["ratings"][0]["created_at"] == "2025-03-05T10:00:00Z"
        assert result["stats"]["average_rating"] == 4.6
