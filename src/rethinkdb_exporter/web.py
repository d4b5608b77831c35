"""FastAPI application serving the exporter's telemetry endpoint."""

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse, PlainTextResponse
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from rethinkdb_exporter import __version__
from rethinkdb_exporter.collector import RethinkdbCollector
from rethinkdb_exporter.config import ExporterSettings
from rethinkdb_exporter.descriptors import MetricDescriptors
from rethinkdb_exporter.protocols import StatsSource
from rethinkdb_exporter.rethink_client import connect_rethinkdb
from rethinkdb_exporter.scrape import Scraper

SourceFactory = Callable[[ExporterSettings], Awaitable[StatsSource]]

LANDING_PAGE = """<html>
<head><title>RethinkDB Exporter</title></head>
<body>
<h1>RethinkDB Exporter</h1>
<p><a href='{telemetry_path}'>Metrics</a></p>
<h2>Build</h2>
<pre>version={version}</pre>
</body>
</html>
"""


async def connect_from_settings(settings: ExporterSettings) -> StatsSource:
    """Open the RethinkDB connection pool described by settings."""
    db = settings.db
    return await connect_rethinkdb(
        db.rethinkdb_addresses,
        username=db.username,
        password=db.password,
        ca_file=str(db.ca_file) if db.enable_tls and db.ca_file else None,
        pool_size=db.connection_pool_size,
        timeout=db.connect_timeout,
    )


def create_app(
    settings: ExporterSettings,
    source_factory: SourceFactory = connect_from_settings,
) -> FastAPI:
    """
    Build the exporter application.

    The descriptor set and registry are created here, once. The database
    source, scraper and collector are created in the lifespan so that the
    connections belong to the server's event loop, and the collector is
    registered explicitly on the application's registry.

    Args:
        settings: Validated exporter settings.
        source_factory: Coroutine function opening the StatsSource.

    Returns:
        FastAPI app; app.state.registry holds the CollectorRegistry.
    """
    descriptors = MetricDescriptors.build(table_rows_count=settings.stats.table_docs_estimates)

    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)

    handler_requests = Counter(
        "promhttp_metric_handler_requests_total",
        "Total number of scrapes by HTTP status code",
        ["code"],
        registry=registry,
    )
    handler_in_flight = Gauge(
        "promhttp_metric_handler_requests_in_flight",
        "Current number of scrapes being served",
        registry=registry,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        source = await source_factory(settings)
        scraper = Scraper(
            source=source,
            descriptors=descriptors,
            timeout=settings.stats.scrape_timeout,
            max_concurrency=settings.stats.table_estimates_concurrency,
        )
        collector = RethinkdbCollector(scraper, descriptors, loop=asyncio.get_running_loop())
        registry.register(collector)
        app.state.collector = collector

        yield

        app.state.collector = None
        registry.unregister(collector)
        close = getattr(source, "close", None)
        if close is not None:
            await close()

    app = FastAPI(
        title="RethinkDB Exporter",
        description="Prometheus exporter for RethinkDB statistics",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.descriptors = descriptors
    app.state.collector = None

    # Sync endpoint: runs in the threadpool, so the collector can block on
    # the scrape it submits to the event loop.
    @app.get(settings.web.telemetry_path, include_in_schema=False)
    def metrics() -> Response:
        try:
            with handler_in_flight.track_inprogress():
                body = generate_latest(registry)
        except Exception:
            handler_requests.labels(code="500").inc()
            raise
        handler_requests.labels(code="200").inc()
        return Response(content=body, media_type=CONTENT_TYPE_LATEST)

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def index() -> str:
        return LANDING_PAGE.format(
            telemetry_path=settings.web.telemetry_path,
            version=__version__,
        )

    @app.get("/-/healthy", response_class=PlainTextResponse)
    async def healthy() -> str:
        return "OK"

    @app.get("/-/ready", response_class=PlainTextResponse)
    async def ready(response: Response) -> str:
        if app.state.collector is None:
            response.status_code = 503
            return "Not ready"
        return "OK"

    return app
