"""Tests for the exporter HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from fakes import FakeSource, cluster_row, table_row
from rethinkdb_exporter.config import ExporterSettings
from rethinkdb_exporter.web import create_app


def make_settings(**stats) -> ExporterSettings:
    return ExporterSettings.model_validate({"stats": stats})


@pytest.fixture
def source():
    return FakeSource(
        rows=[cluster_row(connections=7), table_row(db="app", table="users")],
        infos={("app", "users"): {"doc_count_estimates": [3, 5, 4]}},
    )


@pytest.fixture
def app(source):
    async def factory(settings):
        return source

    return create_app(make_settings(table_docs_estimates=True), source_factory=factory)


class TestMetricsEndpoint:
    def test_metrics(self, app):
        with TestClient(app) as client:
            response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert "rethinkdb_cluster_client_connections 7.0" in body
        assert "rethinkdb_scrape_errors 0.0" in body
        assert "rethinkdb_table_rows_count" in body

    def test_handler_counters(self, app):
        with TestClient(app) as client:
            client.get("/metrics")
            body = client.get("/metrics").text

        assert 'promhttp_metric_handler_requests_total{code="200"} 1.0' in body

    def test_render_failure_counted_as_500(self, app):
        class BrokenCollector:
            def describe(self):
                return []

            def collect(self):
                raise RuntimeError("collector broken")

        registry = app.state.registry
        broken = BrokenCollector()
        registry.register(broken)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/metrics")

        registry.unregister(broken)
        assert response.status_code == 500
        assert registry.get_sample_value("promhttp_metric_handler_requests_total", {"code": "500"}) == 1.0
        assert registry.get_sample_value("promhttp_metric_handler_requests_total", {"code": "200"}) is None
        assert registry.get_sample_value("promhttp_metric_handler_requests_in_flight") == 0.0

    def test_custom_telemetry_path(self, source):
        async def factory(settings):
            return source

        settings = ExporterSettings.model_validate({"web": {"telemetry_path": "/stats"}})
        app = create_app(settings, source_factory=factory)

        with TestClient(app) as client:
            assert client.get("/stats").status_code == 200
            assert client.get("/metrics").status_code == 404

    def test_scrape_error_is_not_http_error(self):
        async def factory(settings):
            return FakeSource(open_error=ConnectionError("refused"))

        app = create_app(make_settings(), source_factory=factory)

        with TestClient(app) as client:
            response = client.get("/metrics")

        assert response.status_code == 200
        assert "rethinkdb_scrape_errors 1.0" in response.text


class TestLifecycle:
    def test_source_closed_on_shutdown(self, app, source):
        with TestClient(app):
            assert not source.closed

        assert source.closed

    def test_ready_after_startup(self, app):
        with TestClient(app) as client:
            response = client.get("/-/ready")

        assert response.status_code == 200
        assert response.text == "OK"

    def test_not_ready_before_startup(self, app):
        # No context manager: lifespan does not run
        client = TestClient(app)

        response = client.get("/-/ready")

        assert response.status_code == 503


class TestStaticEndpoints:
    def test_healthy(self, app):
        response = TestClient(app).get("/-/healthy")

        assert response.status_code == 200
        assert response.text == "OK"

    def test_landing_page_links_metrics(self, app):
        response = TestClient(app).get("/")

        assert response.status_code == 200
        assert "href='/metrics'" in response.text
        assert "RethinkDB Exporter" in response.text
