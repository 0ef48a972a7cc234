from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from gfrecipes.app.deps import CurrentUser, get_current_user, get_pipeline
from gfrecipes.app.domain.errors import ExtractionFailure
from gfrecipes.app.infra.db.memory_store import InMemoryRecordStore
from gfrecipes.app.infra.extraction.base import ExtractionAdapter
from gfrecipes.app.infra.extraction.static_provider import StaticExtractionAdapter
from gfrecipes.app.main import app
from gfrecipes.app.services.recipe_pipeline import RecipePipeline

BANANA_BREAD = (
    "Banana Bread\n"
    "Ingredients:\n"
    "- 1 1/2 cups all-purpose flour\n"
    "- 1 egg\n"
    "Steps:\n"
    "1) Mix.\n"
    "2) Bake."
)


class UnreadableExtractor(ExtractionAdapter):
    name = "unreadable"

    def extract(self, document_reference: str) -> str:
        raise ExtractionFailure(document_reference, "image is blank")


def override(pipeline: RecipePipeline, user_id: str = "user-1") -> None:
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=user_id)


@pytest.fixture
def pipeline() -> RecipePipeline:
    return RecipePipeline(InMemoryRecordStore(), StaticExtractionAdapter(BANANA_BREAD))


@pytest.fixture
def client(pipeline: RecipePipeline) -> Iterator[TestClient]:
    override(pipeline)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["ok"] is True


class TestIngestRoute:
    def test_ingest_creates_recipe(self, client: TestClient, pipeline: RecipePipeline) -> None:
        response = client.post("/recipes/ingest", json={"documentReference": "uploads/banana.jpg"})

        assert response.status_code == 201
        body = response.json()
        assert body["recipeId"]
        assert body["jobId"]
        assert body["warnings"] == []
        assert pipeline.recipes.get_recipe(body["recipeId"]).user_id == "user-1"

    def test_user_mismatch(self, client: TestClient) -> None:
        response = client.post(
            "/recipes/ingest",
            json={"documentReference": "uploads/banana.jpg", "userId": "someone-else"},
        )

        assert response.status_code == 403

    def test_missing_reference(self, client: TestClient) -> None:
        response = client.post("/recipes/ingest", json={"documentReference": ""})

        assert response.status_code == 422

    def test_parse_failure(self, client: TestClient) -> None:
        override(RecipePipeline(InMemoryRecordStore(), StaticExtractionAdapter("Just a title")))

        response = client.post("/recipes/ingest", json={"documentReference": "uploads/x.jpg"})

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["stage"] == "parse"
        assert detail["recipeId"]

    def test_extraction_failure(self, client: TestClient) -> None:
        override(RecipePipeline(InMemoryRecordStore(), UnreadableExtractor()))

        response = client.post("/recipes/ingest", json={"documentReference": "uploads/x.jpg"})

        assert response.status_code == 502
        assert response.json()["detail"]["stage"] == "extraction"


class TestRecipeRoutes:
    def ingest(self, client: TestClient) -> str:
        response = client.post("/recipes/ingest", json={"documentReference": "uploads/banana.jpg"})
        return response.json()["recipeId"]

    def test_convert(self, client: TestClient) -> None:
        recipe_id = self.ingest(client)

        response = client.post("/recipes/convert", json={"recipeId": recipe_id})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["recipeId"] == recipe_id
        assert body["substitutions"] == [
            {
                "ingredientName": "all-purpose flour",
                "replacementName": "gluten-free 1:1 baking flour",
                "suggestedProduct": "Gluten-Free 1:1 Baking Flour",
                "brand": "PC",
                "productUrl": "https://www.presidentschoice.ca/",
                "rationale": "1:1 GF flour maintains texture without changing ratios.",
            }
        ]

    def test_convert_without_parsed_version(self, client: TestClient, pipeline: RecipePipeline) -> None:
        recipe = pipeline.recipes.create_recipe("user-1")

        response = client.post("/recipes/convert", json={"recipeId": recipe.id})

        assert response.status_code == 404
        assert response.json()["detail"] == {
            "error": f"No parsed version found for recipe {recipe.id}",
            "stage": "conversion",
            "recipeId": recipe.id,
        }

    def test_convert_unknown_recipe(self, client: TestClient) -> None:
        response = client.post("/recipes/convert", json={"recipeId": "missing"})

        assert response.status_code == 404

    def test_convert_other_users_recipe(self, client: TestClient, pipeline: RecipePipeline) -> None:
        recipe = pipeline.recipes.create_recipe("user-2")

        response = client.post("/recipes/convert", json={"recipeId": recipe.id})

        assert response.status_code == 404

    def test_latest_version(self, client: TestClient) -> None:
        recipe_id = self.ingest(client)
        client.post("/recipes/convert", json={"recipeId": recipe_id})

        parsed = client.get(f"/recipes/{recipe_id}/versions/latest")
        converted = client.get(f"/recipes/{recipe_id}/versions/latest", params={"kind": "converted"})

        assert parsed.status_code == 200
        assert parsed.json()["kind"] == "parsed"
        assert parsed.json()["payload"]["title"] == "Banana Bread"
        assert converted.json()["payload"]["ingredients"][0]["name"] == "gluten-free 1:1 baking flour"

    def test_latest_version_missing_kind(self, client: TestClient) -> None:
        recipe_id = self.ingest(client)

        response = client.get(f"/recipes/{recipe_id}/versions/latest", params={"kind": "converted"})

        assert response.status_code == 404

    def test_latest_version_invalid_kind(self, client: TestClient) -> None:
        recipe_id = self.ingest(client)

        response = client.get(f"/recipes/{recipe_id}/versions/latest", params={"kind": "draft"})

        assert response.status_code == 422

    def test_list_substitutions(self, client: TestClient) -> None:
        recipe_id = self.ingest(client)
        client.post("/recipes/convert", json={"recipeId": recipe_id})
        client.post("/recipes/convert", json={"recipeId": recipe_id})

        response = client.get(f"/recipes/{recipe_id}/substitutions")

        assert response.status_code == 200
        assert len(response.json()["substitutions"]) == 2
