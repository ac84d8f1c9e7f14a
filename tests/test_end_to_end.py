"""End-to-end flow through the HTTP API with a scripted generative capability."""
from fastapi.testclient import TestClient

from factories import happy_capability
from main import app
from services.generative_capability import get_generative_capability


def test_generate_poll_and_fetch_grocery_list(profile):
    capability = happy_capability()
    app.dependency_overrides[get_generative_capability] = lambda: capability
    headers = {"X-User-Id": profile.id}
    try:
        with TestClient(app) as client:
            created = client.post(
                "/api/meal-plans/generate",
                json={"week_start_date": "2026-11-02", "theme": "Mediterranean"},
                headers=headers,
            )
            assert created.status_code == 202
            assert created.json()["status"] == "pending"
            job_id = created.json()["job_id"]

            status = client.get(f"/api/jobs/{job_id}", headers=headers).json()
            assert status["status"] == "completed"
            plan_id = status["meal_plan_id"]

            latest = client.get("/api/jobs", params={"week_start_date": "2026-11-02"}, headers=headers).json()
            assert latest["job_id"] == job_id

            plan = client.get(f"/api/meal-plans/{plan_id}", headers=headers).json()
            assert plan["theme"] == "Mediterranean"
            assert len(plan["days"]) == 7

            grocery = client.get(f"/api/meal-plans/{plan_id}/grocery-list", headers=headers).json()
            assert grocery["items"][0]["name_normalized"] == "chicken breast"
            assert grocery["items"][0]["total"]["display"] == "126 oz"

            duplicate = client.post(
                "/api/meal-plans/generate",
                json={"week_start_date": "2026-11-02"},
                headers=headers,
            )
            assert duplicate.status_code == 400

            other = client.get(f"/api/meal-plans/{plan_id}/grocery-list", headers={"X-User-Id": "intruder"})
            assert other.status_code == 404
    finally:
        app.dependency_overrides.clear()
    assert "Mediterranean" in capability.prompts_for("select_core_ingredients")[0]
