"""
Runtime configuration read from environment variables.
"""
import os
import logging
from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo


@dataclass
class Settings:
    """Service settings"""
    store_backend: str = "memory"          # memory | postgres
    database_url: Optional[str] = None
    reporting_timezone: str = "UTC"        # calendar-day boundary for analytics
    kafka_bootstrap_servers: str = "localhost:9092"
    results_topic: str = "moderation-results"
    dlq_topic: str = "moderation-dlq"
    metrics_port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        backend = os.getenv("STORE_BACKEND")
        database_url = os.getenv("DATABASE_URL")
        if not backend:
            backend = "postgres" if database_url or os.getenv("DB_HOST") else "memory"
        return cls(
            store_backend=backend.lower(),
            database_url=database_url,
            reporting_timezone=os.getenv("REPORTING_TIMEZONE", "UTC"),
            kafka_bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            results_topic=os.getenv("MODERATION_RESULTS_TOPIC", "moderation-results"),
            dlq_topic=os.getenv("MODERATION_DLQ_TOPIC", "moderation-dlq"),
            metrics_port=int(os.getenv("METRICS_PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def tz(self) -> tzinfo:
        if self.reporting_timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.reporting_timezone)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
