"""
Utility helpers for roster importer configuration lookups.
"""

from __future__ import annotations

from flask import current_app


def _get_config(app=None):
    if app is not None:
        return app.config
    return current_app.config


def is_roster_import_enabled(app=None) -> bool:
    """Return True when the roster import feature flag is enabled."""
    config = _get_config(app)
    return bool(config.get("ROSTER_IMPORT_ENABLED", False))


def get_code_lengths(app=None) -> tuple[int, int]:
    """Return the (department, section) affiliation-code prefix lengths."""
    config = _get_config(app)
    return int(config.get("ROSTER_DEPARTMENT_CODE_LENGTH", 2)), int(config.get("ROSTER_SECTION_CODE_LENGTH", 4))


def get_max_upload_mb(app=None) -> int:
    config = _get_config(app)
    return int(config.get("ROSTER_MAX_UPLOAD_MB", 10))
