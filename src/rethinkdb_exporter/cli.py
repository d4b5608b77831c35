"""RethinkDB exporter CLI.

Every option can also be set through the environment variable named in its
help, or through the YAML config file (see config.py). Flags win over
environment variables, which win over the config file.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import typer
import uvicorn

from rethinkdb_exporter import __version__
from rethinkdb_exporter.config import ExporterSettings, load_settings
from rethinkdb_exporter.errors import ConfigError
from rethinkdb_exporter.log_setup import setup_logging
from rethinkdb_exporter.web import create_app

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="rethinkdb-exporter",
    help="RethinkDB statistics exporter to Prometheus",
    add_completion=False,
)


def _split_addresses(addresses: list[str] | None) -> list[str] | None:
    # Accept both repeated --db.address flags and DB_ADDRESSES=a:1,b:2
    if not addresses:
        return None
    return [a.strip() for item in addresses for a in item.split(",") if a.strip()]


def build_overrides(**options: Any) -> dict[str, Any]:
    """Map flat CLI option values onto the nested settings layout."""
    return {
        "log": {
            "debug": options.get("log_debug"),
            "json_output": options.get("log_json_output"),
        },
        "db": {
            "rethinkdb_addresses": _split_addresses(options.get("db_address")),
            "username": options.get("db_username"),
            "password": options.get("db_password"),
            "enable_tls": options.get("db_enable_tls"),
            "ca_file": options.get("db_ca"),
            "connection_pool_size": options.get("db_pool_size"),
            "connect_timeout": options.get("db_connect_timeout"),
        },
        "web": {
            "listen_address": options.get("web_listen_address"),
            "telemetry_path": options.get("web_telemetry_path"),
        },
        "stats": {
            "table_docs_estimates": options.get("stats_table_estimates"),
            "table_estimates_concurrency": options.get("stats_table_estimates_concurrency"),
            "scrape_timeout": options.get("stats_scrape_timeout"),
        },
    }


def serve(settings: ExporterSettings) -> None:
    """Run the HTTP server until interrupted."""
    web_app = create_app(settings)
    logger.info(f"Listening on address {settings.web.listen_address}")
    uvicorn.run(
        web_app,
        host=settings.web.host,
        port=settings.web.port,
        log_config=None,
    )


@app.command()
def run(
    config: Optional[Path] = typer.Option(
        None, "--config", help="Config file (default to prometheus-exporter.yaml)"
    ),
    log_debug: Optional[bool] = typer.Option(
        None, "--log.debug", envvar="LOG_DEBUG", help="Verbose debug logs"
    ),
    log_json_output: Optional[bool] = typer.Option(
        None, "--log.json-output", envvar="LOG_JSON_OUTPUT", help="Use JSON output for logs"
    ),
    db_address: Optional[list[str]] = typer.Option(
        None,
        "--db.address",
        envvar="DB_ADDRESSES",
        help="Address of one or more nodes of rethinkdb (default localhost:28015)",
    ),
    db_username: Optional[str] = typer.Option(
        None, "--db.username", envvar="DB_USERNAME", help="Username of rethinkdb user"
    ),
    db_password: Optional[str] = typer.Option(
        None, "--db.password", envvar="DB_PASSWORD", help="Password of rethinkdb user"
    ),
    db_enable_tls: Optional[bool] = typer.Option(
        None, "--db.enable-tls", envvar="DB_ENABLE_TLS", help="Enable to use tls connection"
    ),
    db_ca: Optional[Path] = typer.Option(
        None, "--db.ca", envvar="DB_CA", help="Path to CA certificate file for tls connection"
    ),
    db_pool_size: Optional[int] = typer.Option(
        None, "--db.pool-size", envvar="DB_POOL_SIZE", help="Size of connection pool to rethinkdb (default 5)"
    ),
    db_connect_timeout: Optional[float] = typer.Option(
        None,
        "--db.connect-timeout",
        envvar="DB_CONNECT_TIMEOUT",
        help="Timeout in seconds for connecting to rethinkdb (default 20)",
    ),
    web_listen_address: Optional[str] = typer.Option(
        None,
        "--web.listen-address",
        envvar="WEB_LISTEN_ADDRESS",
        help="Address to listen on for web interface and telemetry (default 0.0.0.0:9055)",
    ),
    web_telemetry_path: Optional[str] = typer.Option(
        None,
        "--web.telemetry-path",
        envvar="WEB_TELEMETRY_PATH",
        help="Path under which to expose metrics (default /metrics)",
    ),
    stats_table_estimates: Optional[bool] = typer.Option(
        None,
        "--stats.table-estimates",
        envvar="STATS_TABLE_ESTIMATES",
        help="Collect docs count estimates for each table",
    ),
    stats_table_estimates_concurrency: Optional[int] = typer.Option(
        None,
        "--stats.table-estimates-concurrency",
        envvar="STATS_TABLE_ESTIMATES_CONCURRENCY",
        help="Maximum concurrent docs count lookups per scrape (default 8)",
    ),
    stats_scrape_timeout: Optional[float] = typer.Option(
        None,
        "--stats.scrape-timeout",
        envvar="STATS_SCRAPE_TIMEOUT",
        help="Deadline in seconds for one scrape of rethinkdb (default 10)",
    ),
) -> None:
    """
    Run the exporter.

    Serves the rethinkdb statistics on the telemetry path until interrupted.
    """
    overrides = build_overrides(**{k: v for k, v in locals().items() if k != "config"})

    try:
        settings = load_settings(config, overrides)
    except ConfigError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)

    setup_logging(debug=settings.log.debug, json_output=settings.log.json_output)
    logger.info(f"Starting rethinkdb exporter {__version__}")

    serve(settings)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
