"""
Integration test: App startup and HTTP API.

The app is built around a Pipeline wired to fakes, so nothing here
touches the network.
"""

import json

import pytest
from fakes import AUDIENCE, EXTRACT, HARD_NOS, agent_json, page_text
from models import CandidatePage, ExtractionSample, ValidatedRecord
from repositories import JsonRegistryRepository, JsonlRecordSink, SinkConfigError
from finder import Pipeline

import app as app_module

AGENT_URL = "https://acmelit.com/agents/jane"


@pytest.fixture
def pipeline(settings, small_registry, make_oracle, make_embedder, make_fetcher):
    repo = JsonRegistryRepository(settings.registry_path)
    repo.save(small_registry)
    oracle = make_oracle({
        EXTRACT: agent_json(),
        HARD_NOS: json.dumps({"hard_nos": ["Poetry"]}),
        AUDIENCE: json.dumps({"audience": ["Adult"]}),
    })
    fetcher = make_fetcher({AGENT_URL: CandidatePage(url=AGENT_URL, title="Jane Doe", text=page_text())})
    return Pipeline(settings, oracle=oracle, embedder=make_embedder(default=[0.6, 0.8]),
                    fetcher=fetcher, registry_repo=repo, sink=JsonlRecordSink(settings.sink_path))


@pytest.fixture
def client(pipeline):
    return app_module.create_app(pipeline).test_client()


class TestAppStartup:
    """Verify app can start."""

    def test_blueprints_registered(self, pipeline):
        flask_app = app_module.create_app(pipeline)
        assert "finder" in flask_app.blueprints
        assert "registry" in flask_app.blueprints

    def test_routes_exist(self, pipeline):
        rules = [rule.rule for rule in app_module.create_app(pipeline).url_map.iter_rules()]
        for route in ("/health", "/api/extract", "/api/crawl", "/api/save",
                      "/api/genres", "/api/genres/approve"):
            assert route in rules

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "ok"
        assert data["oracle"] is True
        assert data["embeddings"] is True


class TestExtractApi:

    def test_requires_url(self, client):
        assert client.post("/api/extract", json={}).status_code == 400
        assert client.post("/api/extract", json={"url": "acmelit.com"}).status_code == 400

    def test_crawl_single(self, client):
        response = client.post("/api/crawl", json={"urls": [AGENT_URL], "mode": "single"})
        assert response.status_code == 200
        data = response.get_json()
        assert data["records"][0]["record"]["agent_name"] == "Jane Doe"
        assert data["records"][0]["passes_quality_gate"] is True
        assert "profile_embedding" not in data["records"][0]["record"]

    def test_extract_unreachable_site(self, client):
        response = client.post("/api/extract", json={"url": "https://unreachable.example"})
        assert response.status_code == 200
        data = response.get_json()
        assert data["records"] == []
        assert data["failures"][0]["stage"] == "fetch"

    @pytest.mark.parametrize("body", [
        {"urls": "https://acmelit.com"},
        {"urls": []},
        {"urls": [AGENT_URL], "mode": "deep"},
    ])
    def test_crawl_bad_request(self, client, body):
        assert client.post("/api/crawl", json=body).status_code == 400


class TestSaveApi:

    def record_json(self):
        record = ValidatedRecord(record=ExtractionSample(agent_name="Jane Doe",
                                                         email="jane@acmelit.com"),
                                 confidence_score=50, passes_quality_gate=True)
        return record.model_dump(mode="json")

    def test_save(self, client, settings):
        response = client.post("/api/save", json={"agents": [self.record_json(), {"record": 5}]})
        assert response.status_code == 200
        data = response.get_json()
        assert data["saved"] == 1
        assert data["failed"] == 1
        assert settings.sink_path.exists()

    def test_requires_agents(self, client):
        assert client.post("/api/save", json={"agents": []}).status_code == 400

    def test_sink_not_configured(self, client, pipeline, monkeypatch):
        def broken(records):
            raise SinkConfigError("GOOGLE_SHEET_ID is not configured")
        monkeypatch.setattr(pipeline, "save", broken)
        response = client.post("/api/save", json={"agents": [self.record_json()]})
        assert response.status_code == 500
        assert "GOOGLE_SHEET_ID" in response.get_json()["error"]


class TestGenresApi:

    def test_list_grouped(self, client):
        data = client.get("/api/genres").get_json()
        assert data["fiction"] == ["Thriller", "Romance", "Science Fiction", "Poetry"]
        assert data["nonfiction"] == ["Memoir"]

    def test_list_one_category(self, client):
        data = client.get("/api/genres?category=nonfiction").get_json()
        assert data == {"nonfiction": ["Memoir"]}

    def test_approve(self, client, settings):
        response = client.post("/api/genres/approve",
                               json={"genreName": "Cozy Mystery", "category": "fiction"})
        assert response.status_code == 200
        assert response.get_json() == {
            "status": "approved",
            "genre": "Cozy Mystery",
            "category": "fiction",
            "provenance": "user",
        }
        assert "Cozy Mystery" in client.get("/api/genres").get_json()["fiction"]
        stored = json.loads(settings.registry_path.read_text())
        assert stored["entries"][-1]["name"] == "Cozy Mystery"

    @pytest.mark.parametrize("body", [
        {"category": "fiction"},
        {"genreName": "Cozy Mystery"},
        {"genreName": "Cozy Mystery", "category": "poetry"},
    ])
    def test_approve_bad_request(self, client, body):
        assert client.post("/api/genres/approve", json=body).status_code == 400
