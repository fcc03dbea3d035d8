"""HTTP surface, with the planner dependency swapped for one built on fakes."""
import pytest
from fastapi.testclient import TestClient

from main import app
from meal_grounding.routes.dependencies import get_planner
from tests.fakes import CORPUS


@pytest.fixture
def client(planner_factory, fake_index, fake_llm):
    planner = planner_factory(fake_index, fake_llm)
    app.dependency_overrides[get_planner] = lambda: planner
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").status_code == 200


def test_generate_plan(client):
    res = client.post("/meal-plans/generate", json={
        "duration": 2,
        "seed": 42,
        "startDate": "2025-01-06",
        "preferences": {"dietType": "vegan", "allergies": "peanut", "includeSnacks": False},
    })
    assert res.status_code == 201
    plan = res.json()["mealPlan"]
    assert plan["generatedBy"] == "llm-grounded"
    assert plan["seed"] == 42
    assert [d["date"] for d in plan["days"]] == ["2025-01-06", "2025-01-07"]
    for day in plan["days"]:
        assert [m["type"] for m in day["meals"]] == ["breakfast", "lunch", "dinner"]
        for meal in day["meals"]:
            recipe = meal["recipes"][0]
            assert recipe["id"] in CORPUS
            assert "prepTime" in recipe
            assert meal["scheduledTime"]


def test_generate_requires_preferences(client):
    res = client.post("/meal-plans/generate", json={"duration": 3})
    assert res.status_code == 400


def test_generate_rejects_long_duration(client):
    res = client.post("/meal-plans/generate", json={"duration": 30, "preferences": {}})
    assert res.status_code == 422


def test_alternatives(client):
    res = client.post("/meal-plans/alternatives", json={
        "mealType": "Dinner",
        "preferences": {"dietType": "vegan"},
        "excludeIds": ["d-tacos"],
        "limit": 2,
    })
    assert res.status_code == 200
    body = res.json()
    assert body["mealType"] == "dinner"
    ids = [r["id"] for r in body["alternatives"]]
    assert len(ids) == 2
    assert "d-tacos" not in ids
    assert all("vegan" in CORPUS[i]["diet_tags"] for i in ids)


def test_alternatives_bad_meal_type(client):
    res = client.post("/meal-plans/alternatives", json={"mealType": "brunch"})
    assert res.status_code == 400


def test_debug_candidates(client):
    res = client.post("/debug/candidates", json={"mealType": "snack", "limit": 3})
    assert res.status_code == 200
    rows = res.json()
    assert len(rows) == 3
    for row in rows:
        assert row["id"] in CORPUS
        assert row["synthetic"] is False
        assert row["ingredients_len"] >= 2
        assert row["steps_len"] == 3


def test_generate_rejects_bad_start_date(client):
    res = client.post("/meal-plans/generate", json={"preferences": {}, "startDate": "next tuesday"})
    assert res.status_code == 400
