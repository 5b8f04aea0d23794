"""
Mom's Yums Backend - API Route Tests
======================================

What:  HTTP-level tests: status codes, error bodies, auth and headers.
How:   httpx AsyncClient over ASGITransport against create_app(); the
       database session is a mock and the extraction service runs on
       FakeBackends swapped into app.state.

Test Categories:
    1. POST /api/extract
    2. Recipe CRUD, categories and stored files
    3. Collections and share links
    4. Health check and request IDs
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import BackendUnavailableError
from app.models.category import Category
from app.models.recipe import Recipe
from app.services.extraction_service import ALL_FAILED_MESSAGE, PARTIAL_RESULT_MESSAGE, ExtractionService
from app.services.recipe_fields import TITLE_PLACEHOLDER, RecipeFields

OTHER_USER = uuid.UUID("99999999-8888-7777-6666-555555555555")


def make_recipe(owner: uuid.UUID, **overrides) -> Recipe:
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    values = dict(
        id=uuid.uuid4(),
        user_id=owner,
        display_name="Grandma Rose",
        title="Apple Pie",
        ingredients="6 apples\n1 cup sugar",
        instructions="Slice apples\nBake 45 minutes",
        image_url="",
        category_id=None,
        created_at=created,
        updated_at=created,
    )
    values.update(overrides)
    return Recipe(**values)


@pytest.fixture
def use_backends(app, test_settings):
    """Replace the app's extraction service with one built on fakes."""
    def install(primary, secondary=None):
        app.state.extraction_service = ExtractionService(test_settings, primary, secondary)
    return install


# ══════════════════════════════════════════════════════════════════════════
# Extraction
# ══════════════════════════════════════════════════════════════════════════

class TestExtractEndpoint:

    @pytest.mark.asyncio
    async def test_requires_sign_in(self, client, sample_jpeg):
        response = await client.post("/api/extract", files=[("images", ("card.jpg", sample_jpeg, "image/jpeg"))])

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_expired_token(self, client, make_token, sample_jpeg):
        response = await client.post(
            "/api/extract",
            files=[("images", ("card.jpg", sample_jpeg, "image/jpeg"))],
            headers={"Authorization": f"Bearer {make_token(expires_in=-10)}"},
        )

        assert response.status_code == 401
        assert "expired" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_complete_extraction(self, client, auth_headers, use_backends, fake_backend, sample_jpeg, sample_png):
        primary = fake_backend("openai", RecipeFields("Apple Pie", "6 apples, 1 cup sugar", "Bake 45 minutes"))
        use_backends(primary, fake_backend("google_vision"))

        response = await client.post(
            "/api/extract",
            files=[
                ("images", ("front.jpg", sample_jpeg, "image/jpeg")),
                ("images", ("back.png", sample_png, "image/png")),
            ],
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["complete"] is True
        assert body["message"] is None
        assert body["recipe"]["title"] == "Apple Pie"
        assert body["attempts"][0]["image_count"] == 2
        assert len(primary.calls) == 1

    @pytest.mark.asyncio
    async def test_partial_extraction(self, client, auth_headers, use_backends, fake_backend, sample_jpeg):
        use_backends(fake_backend("openai", RecipeFields(ingredients="6 apples, 1 cup sugar")))

        response = await client.post(
            "/api/extract",
            files=[("images", ("card.jpg", sample_jpeg, "image/jpeg"))],
            headers=auth_headers,
        )

        body = response.json()
        assert response.status_code == 200
        assert body["complete"] is False
        assert body["message"] == PARTIAL_RESULT_MESSAGE
        assert body["recipe"]["title"] == TITLE_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_invalid_image(self, client, auth_headers, use_backends, fake_backend, sample_jpeg):
        primary = fake_backend("openai", RecipeFields())
        use_backends(primary)

        response = await client.post(
            "/api/extract",
            files=[
                ("images", ("card.jpg", sample_jpeg, "image/jpeg")),
                ("images", ("notes.jpg", b"plain text", "image/jpeg")),
            ],
            headers=auth_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_image"
        assert body["details"]["image_index"] == 1
        assert primary.calls == []

    @pytest.mark.asyncio
    async def test_too_many_images_rejected_before_reading(self, client, app, auth_headers, use_backends, fake_backend, sample_jpeg):
        primary = fake_backend("openai", RecipeFields())
        use_backends(primary)
        limit = app.state.extraction_service.settings.max_images_per_request

        with patch("starlette.datastructures.UploadFile.read", AsyncMock(return_value=sample_jpeg)) as read:
            response = await client.post(
                "/api/extract",
                files=[("images", (f"page{i}.jpg", sample_jpeg, "image/jpeg")) for i in range(limit + 1)],
                headers=auth_headers,
            )

        assert response.status_code == 400
        body = response.json()
        assert body["details"]["field"] == "images"
        assert body["details"]["limit"] == limit
        read.assert_not_awaited()
        assert primary.calls == []

    @pytest.mark.asyncio
    async def test_oversized_image(self, client, app, auth_headers, use_backends, fake_backend, sample_jpeg):
        primary = fake_backend("openai", RecipeFields())
        use_backends(primary)
        app.state.file_service.max_file_size = len(sample_jpeg) - 1

        response = await client.post(
            "/api/extract",
            files=[("images", ("card.jpg", sample_jpeg, "image/jpeg"))],
            headers=auth_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "image"
        assert primary.calls == []

    @pytest.mark.asyncio
    async def test_every_backend_down(self, client, auth_headers, use_backends, fake_backend, sample_jpeg):
        down = BackendUnavailableError(message="connection refused", backend="openai", retryable=True)
        use_backends(fake_backend("openai", down), fake_backend("google_vision", down))

        response = await client.post(
            "/api/extract",
            files=[("images", ("card.jpg", sample_jpeg, "image/jpeg"))],
            headers=auth_headers,
        )

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "backend_unavailable"
        assert body["message"] == ALL_FAILED_MESSAGE
        assert len(body["details"]["failures"]) == 4
        assert body["request_id"]


# ══════════════════════════════════════════════════════════════════════════
# Recipes
# ══════════════════════════════════════════════════════════════════════════

class TestRecipeEndpoints:

    @pytest.mark.asyncio
    async def test_create_recipe_with_image(self, client, auth_headers, mock_db_session, sample_jpeg, user_id):
        response = await client.post(
            "/api/recipes",
            data={"title": "Apple Pie", "ingredients": "6 apples", "instructions": "Bake"},
            files={"image": ("card.jpg", sample_jpeg, "image/jpeg")},
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == str(user_id)
        assert body["display_name"] == "Grandma Rose"
        assert body["image_url"].startswith("/api/files/")
        mock_db_session.add.assert_called_once()

        served = await client.get(body["image_url"])
        assert served.status_code == 200
        assert served.headers["content-type"] == "image/jpeg"
        assert served.content == sample_jpeg

    @pytest.mark.asyncio
    async def test_create_blank_title(self, client, auth_headers):
        response = await client.post(
            "/api/recipes",
            data={"title": "   ", "ingredients": "6 apples", "instructions": "Bake"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "title"

    @pytest.mark.asyncio
    async def test_create_requires_sign_in(self, client):
        response = await client.post(
            "/api/recipes",
            data={"title": "Pie", "ingredients": "apples", "instructions": "Bake"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_store_failure_reports_reason(self, client, auth_headers, mock_db_session):
        mock_db_session.commit.side_effect = OperationalError("INSERT", {}, Exception("could not connect to server"))

        response = await client.post(
            "/api/recipes",
            data={"title": "Pie", "ingredients": "apples", "instructions": "Bake"},
            headers=auth_headers,
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert body["message"] == "Could not save the recipe. Please try again."
        assert "could not connect to server" in body["details"]["reason"]

    @pytest.mark.asyncio
    async def test_list_my_recipes(self, client, auth_headers, mock_db_session, user_id):
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = [
            make_recipe(user_id),
            make_recipe(user_id, title="Cherry Pie"),
        ]

        response = await client.get("/api/recipes", params={"search": "pie"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["total_count"] == 2

    @pytest.mark.asyncio
    async def test_get_recipe_is_public(self, client, mock_db_session, user_id):
        recipe = make_recipe(user_id)
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = recipe

        response = await client.get(f"/api/recipes/{recipe.id}")

        assert response.status_code == 200
        assert response.json()["title"] == "Apple Pie"
        assert response.headers["Cache-Control"] == "public, max-age=60"

    @pytest.mark.asyncio
    async def test_get_missing_recipe(self, client, mock_db_session):
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = None

        response = await client.get(f"/api/recipes/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_edit_own_recipe(self, client, auth_headers, mock_db_session, user_id):
        recipe = make_recipe(user_id)
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = recipe

        response = await client.patch(
            f"/api/recipes/{recipe.id}",
            json={"instructions": "Slice apples\nBake 50 minutes"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["instructions"] == "Slice apples\nBake 50 minutes"

    @pytest.mark.asyncio
    async def test_edit_someone_elses_recipe(self, client, auth_headers, mock_db_session):
        recipe = make_recipe(OTHER_USER)
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = recipe

        response = await client.patch(f"/api/recipes/{recipe.id}", json={"title": "Mine"}, headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_delete_own_recipe(self, client, auth_headers, mock_db_session, user_id):
        recipe = make_recipe(user_id)
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = recipe

        response = await client.delete(f"/api/recipes/{recipe.id}", headers=auth_headers)

        assert response.status_code == 204
        mock_db_session.delete.assert_awaited_once_with(recipe)

    @pytest.mark.asyncio
    async def test_categories(self, client, mock_db_session):
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = [
            Category(id=1, name="breakfast", display_name="Breakfast", color="#F59E0B"),
        ]

        response = await client.get("/api/categories")

        assert response.status_code == 200
        assert response.json() == [
            {"id": 1, "name": "breakfast", "display_name": "Breakfast", "color": "#F59E0B"},
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["2024/01/01/missing.jpg", "..%2F..%2Fetc%2Fpasswd"])
    async def test_unknown_file(self, client, path):
        response = await client.get(f"/api/files/{path}")

        assert response.status_code == 404


# ══════════════════════════════════════════════════════════════════════════
# Sharing
# ══════════════════════════════════════════════════════════════════════════

class TestSharingEndpoints:

    @pytest.mark.asyncio
    async def test_public_collection(self, client, mock_db_session, user_id):
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = [make_recipe(user_id)]

        response = await client.get(f"/api/collections/{user_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["display_name"] == "Grandma Rose"
        assert body["total_count"] == 1

    @pytest.mark.asyncio
    async def test_share_links(self, client, auth_headers, user_id):
        response = await client.get("/api/share", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "collection_url": f"https://yums.example.com/collection/{user_id}",
            "recipe_url": None,
        }

    @pytest.mark.asyncio
    async def test_share_links_require_sign_in(self, client):
        response = await client.get("/api/share")

        assert response.status_code == 401


# ══════════════════════════════════════════════════════════════════════════
# Health / Request ID
# ══════════════════════════════════════════════════════════════════════════

class TestHealthEndpoint:

    @pytest.mark.asyncio
    async def test_healthy(self, client, use_backends, fake_backend):
        use_backends(fake_backend("openai"), fake_backend("google_vision"))

        with patch("app.routes.health.check_database", AsyncMock(return_value=True)):
            response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["backends"] == {"openai": "available", "google_vision": "available"}

    @pytest.mark.asyncio
    async def test_degraded_when_a_backend_is_down(self, client, use_backends, fake_backend):
        use_backends(fake_backend("openai"), fake_backend("google_vision", healthy=False))

        with patch("app.routes.health.check_database", AsyncMock(return_value=True)):
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_unhealthy_without_database(self, client, use_backends, fake_backend):
        use_backends(fake_backend("openai"), fake_backend("google_vision"))

        with patch("app.routes.health.check_database", AsyncMock(return_value=False)):
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated_when_missing(self, client):
        response = await client.get("/api/categories")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_id_is_echoed(self, client):
        response = await client.get("/api/categories", headers={"X-Request-ID": "scan-42"})

        assert response.headers["X-Request-ID"] == "scan-42"

    @pytest.mark.asyncio
    async def test_malformed_client_id_is_replaced(self, client):
        response = await client.get("/api/categories", headers={"X-Request-ID": "bad id with spaces"})

        assert response.headers["X-Request-ID"] != "bad id with spaces"

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, client, mock_db_session):
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = None

        response = await client.get(f"/api/recipes/{uuid.uuid4()}", headers={"X-Request-ID": "trace-7"})

        assert response.json()["request_id"] == "trace-7"
