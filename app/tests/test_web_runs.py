"""Member routes: logging runs, progress, settings, weather and feedback."""

from unittest.mock import patch

from runclub.models import Run, User


class TestRuns:
    def test_requires_sign_in(self, anon_client):
        response = anon_client.post("/api/runs", json={"position": 1, "temperature": 10})
        assert response.status_code == 401
        assert response.get_json()["error"] == "Not authenticated"

    def test_save_and_read_back(self, client):
        response = client.post(
            "/api/runs",
            json={"position": 1, "temperature": "-7", "date": "2026-01-10", "distance": "3.2"},
        )
        assert response.status_code == 200
        run = response.get_json()["run"]
        assert run["temperature"] == -7
        assert run["date"] == "2026-01-10"
        assert run["units"] == "imperial"

        fetched = client.get("/api/runs/1").get_json()["run"]
        assert fetched["id"] == run["id"]

    def test_form_post(self, client):
        response = client.post("/api/runs", data={"position": "2", "temperature": "5"})
        assert response.status_code == 200
        assert Run.select().count() == 1

    def test_resave_overwrites(self, client):
        client.post("/api/runs", json={"position": 1, "temperature": 30})
        client.post("/api/runs", json={"position": 1, "temperature": 12})
        assert [r.temperature for r in Run.select()] == [12]

    def test_validation_error(self, client):
        response = client.post("/api/runs", json={"position": "first"})
        assert response.status_code == 400
        assert response.get_json()["field"] == "position"

    def test_no_active_challenge(self, client, challenge):
        from runclub.challenges import delete_challenge

        delete_challenge(challenge.id)
        response = client.post("/api/runs", json={"position": 1, "temperature": 10})
        assert response.status_code == 409

    def test_progress_and_coldest(self, client):
        client.post("/api/runs", json={"position": 1, "temperature": 20})
        client.post("/api/runs", json={"position": 2, "temperature": 8})

        progress = client.get("/api/progress").get_json()["progress"]
        assert progress["run_count"] == 2
        assert progress["days_count"] == 3
        assert not progress["completed"]

        coldest = client.get("/api/coldest-run").get_json()["coldest_run"]
        assert coldest["temperature"] == 8
        assert coldest["position"] == 2

    def test_past_challenges(self, client):
        assert client.get("/api/past-challenges").get_json() == {"past_challenges": []}


class TestSettings:
    def test_units(self, client, member):
        response = client.post("/api/settings/units", json={"units": "metric"})
        assert response.get_json() == {"units": "metric"}
        assert User.get_by_id(member.id).units == "metric"

    def test_invalid_units(self, client):
        assert client.post("/api/settings/units", json={"units": "leagues"}).status_code == 400

    def test_zip_code(self, client, member):
        client.post("/api/settings/zip-code", json={"zip_code": "11211"})
        assert User.get_by_id(member.id).zip_code == "11211"
        client.post("/api/settings/zip-code", json={"zip_code": ""})
        assert User.get_by_id(member.id).zip_code is None


class TestWeather:
    def test_prefill(self, client, member):
        client.post("/api/settings/zip-code", json={"zip_code": "11211"})
        with patch("runclub.weather.get_weather_by_zip_code", return_value={"temperature": 21}) as mock_weather:
            data = client.get("/api/weather").get_json()
        assert data == {"temperature": 21}
        mock_weather.assert_called_once_with("11211")

    def test_no_zip_code(self, client):
        assert client.get("/api/weather").get_json() == {"temperature": None}


class TestFeedback:
    def test_submit(self, client):
        with patch("runclub.feedback.create_linear_issue", return_value={"id": "i", "url": "https://l/1"}):
            response = client.post(
                "/api/feedback",
                json={"category": "Idea", "message": "Add a hot cocoa badge", "page_path": "/"},
                headers={"User-Agent": "pytest"},
            )
        assert response.status_code == 200
        data = response.get_json()
        assert data["linear_status"] == "created"
        assert data["linear_issue_url"] == "https://l/1"

    def test_tracker_down_still_succeeds(self, client):
        response = client.post("/api/feedback", json={"category": "bug", "message": "broken"})
        assert response.status_code == 200
        assert response.get_json()["linear_status"] == "failed"

    def test_invalid_category(self, client):
        response = client.post("/api/feedback", json={"category": "rant", "message": "hi"})
        assert response.status_code == 400
