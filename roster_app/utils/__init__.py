from .importer import get_code_lengths, get_max_upload_mb, is_roster_import_enabled
from .logging_config import JSONFormatter, setup_logging

__all__ = [
    "JSONFormatter",
    "get_code_lengths",
    "get_max_upload_mb",
    "is_roster_import_enabled",
    "setup_logging",
]
