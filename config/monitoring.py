# config/monitoring.py

import os

from prometheus_client import Counter, Histogram


class MonitoringConfig:
    """Logging and metrics configuration"""

    # Logging Configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")  # 'json' or 'text'
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    LOG_FILE_NAME = os.environ.get("LOG_FILE_NAME", "roster.log")
    LOG_FILE_MAX_BYTES = int(os.environ.get("LOG_FILE_MAX_BYTES", 10485760))  # 10MB
    LOG_FILE_BACKUP_COUNT = int(os.environ.get("LOG_FILE_BACKUP_COUNT", 10))

    # Console and File Logging
    ENABLE_FILE_LOGGING = os.environ.get("ENABLE_FILE_LOGGING", "true").lower() == "true"
    ENABLE_CONSOLE_LOGGING = os.environ.get("ENABLE_CONSOLE_LOGGING", "true").lower() == "true"

    # Application Info
    APP_NAME = os.environ.get("APP_NAME", "Roster Importer")
    APP_VERSION = os.environ.get("APP_VERSION", "1.0.0")


class DevelopmentMonitoringConfig(MonitoringConfig):
    """Development-specific monitoring configuration"""

    LOG_LEVEL = "DEBUG"
    LOG_FORMAT = "text"  # More readable in development
    ENABLE_FILE_LOGGING = True
    ENABLE_CONSOLE_LOGGING = True


class ProductionMonitoringConfig(MonitoringConfig):
    """Production-specific monitoring configuration"""

    LOG_LEVEL = "INFO"
    LOG_FORMAT = "json"  # Structured logging for production
    ENABLE_FILE_LOGGING = True
    ENABLE_CONSOLE_LOGGING = False  # Usually handled by container orchestration


class TestingMonitoringConfig(MonitoringConfig):
    """Testing-specific monitoring configuration"""

    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "text"
    ENABLE_FILE_LOGGING = False
    ENABLE_CONSOLE_LOGGING = False


class RosterImportMonitoring:
    """Prometheus metric helpers for roster preview and commit runs."""

    PREVIEW_COUNTER = Counter(
        "roster_import_previews_total",
        "Total roster previews computed.",
        labelnames=("status",),
    )
    PREVIEW_ROWS = Histogram(
        "roster_import_preview_rows",
        "Number of processed rows per roster preview.",
        buckets=(0, 10, 50, 100, 250, 500, 1000, 2500, 5000),
    )
    COMMIT_COUNTER = Counter(
        "roster_import_commits_total",
        "Total roster commits by outcome.",
        labelnames=("status",),
    )
    COMMIT_LATENCY = Histogram(
        "roster_import_commit_seconds",
        "Duration of roster commit transactions.",
        labelnames=("status",),
        buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
    )
    EMPLOYEE_OUTCOMES = Counter(
        "roster_import_employee_outcomes_total",
        "Employee outcomes applied by roster commits.",
        labelnames=("outcome",),
    )
    UNITS_CREATED = Counter(
        "roster_import_units_created_total",
        "Organization units created by roster commits.",
        labelnames=("level",),
    )

    @classmethod
    def record_preview(cls, *, status: str, row_count: int):
        cls.PREVIEW_COUNTER.labels(status=status).inc()
        cls.PREVIEW_ROWS.observe(row_count)

    @classmethod
    def record_commit(cls, *, status: str, duration_seconds: float):
        cls.COMMIT_COUNTER.labels(status=status).inc()
        cls.COMMIT_LATENCY.labels(status=status).observe(duration_seconds)

    @classmethod
    def record_employee_outcomes(cls, **counts: int):
        for outcome, count in counts.items():
            if count:
                cls.EMPLOYEE_OUTCOMES.labels(outcome=outcome).inc(count)

    @classmethod
    def record_units_created(cls, *, department: int, section: int, course: int):
        for level, count in (("department", department), ("section", section), ("course", course)):
            if count:
                cls.UNITS_CREATED.labels(level=level).inc(count)
