"""HTTP surface of the exporter using FastAPI."""
from typing import List
from fastapi import FastAPI, HTTPException, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from pydantic import BaseModel
import logging
import time

from logstash_exporter.exporter import LogstashExporter

logger = logging.getLogger(__name__)


class LogLevelRequest(BaseModel):
    """Request to change log level."""
    level: str


class ExporterAPI:
    """FastAPI application serving metrics, probes and runtime controls."""

    def __init__(
        self,
        registry: CollectorRegistry,
        exporters: List[LogstashExporter],
        telemetry_path: str = "/metrics"
    ):
        """
        Initialize exporter API.

        Args:
            registry: Registry holding the stats collector and self-metrics
            exporters: Per-instance exporters, for status reporting
            telemetry_path: Path under which metrics are exposed
        """
        self.registry = registry
        self.exporters = exporters
        self.telemetry_path = telemetry_path
        self.start_time = time.time()
        self.app = FastAPI(title="Logstash Exporter")

        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        # Plain def: scrapes block on upstream HTTP, so they run in the
        # threadpool and concurrent scrapes do not stall each other.
        @self.app.get(self.telemetry_path)
        def metrics():
            """Scrape all Logstash instances and render the exposition."""
            return Response(
                content=generate_latest(self.registry),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.get("/-/ping", response_class=PlainTextResponse)
        async def ping():
            """Liveness probe."""
            return ""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        @self.app.get("/status")
        async def status():
            """Configured targets and their last known liveness."""
            return {
                "uptime_seconds": time.time() - self.start_time,
                "telemetry_path": self.telemetry_path,
                "targets": [
                    {
                        "host": exporter.host,
                        "uri": exporter.fetcher.uri,
                        "up": exporter.up,
                        "scrape_count": exporter.scrape_count,
                    }
                    for exporter in self.exporters
                ],
            }

        @self.app.post("/control/loglevel")
        async def set_log_level(request: LogLevelRequest):
            """Change log level at runtime."""
            level = request.level.upper()

            if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid log level: {level}"
                )

            logging.getLogger().setLevel(getattr(logging, level))
            logger.info(f"Log level changed to: {level}")

            return {
                "status": "log_level_changed",
                "level": level,
                "timestamp": time.time()
            }

    def run(self, host: str = "0.0.0.0", port: int = 9304):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="info")
