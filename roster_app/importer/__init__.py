"""
Roster importer feature package.

Registers the ``flask roster`` CLI group and records importer state on the
application while staying inert when the feature flag is off.
"""

from __future__ import annotations

from typing import Any

from flask import Flask

from roster_app.utils.importer import get_code_lengths, get_max_upload_mb, is_roster_import_enabled

from .cli import get_disabled_roster_group, roster_cli

ROSTER_EXTENSION_KEY = "roster_importer"

__all__ = [
    "ROSTER_EXTENSION_KEY",
    "get_roster_state",
    "init_roster_importer",
]


def _ensure_extension_state(app: Flask) -> dict[str, Any]:
    return app.extensions.setdefault(
        ROSTER_EXTENSION_KEY,
        {
            "enabled": False,
            "department_code_length": 2,
            "section_code_length": 4,
            "max_upload_mb": 10,
        },
    )


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    # Re-initialisation in tests must not stack registrations
    command_name = roster_cli.name
    if command_name in app.cli.commands:
        app.cli.commands.pop(command_name)

    if enabled:
        app.cli.add_command(roster_cli)
    else:
        app.cli.add_command(get_disabled_roster_group())


def init_roster_importer(app: Flask) -> None:
    """
    Mount the roster CLI based on ``ROSTER_IMPORT_ENABLED``.

    State is kept in ``app.extensions['roster_importer']`` for CLI helpers.
    """
    enabled = is_roster_import_enabled(app)
    state = _ensure_extension_state(app)
    state["enabled"] = enabled

    if not enabled:
        _set_cli(app, enabled=False)
        app.logger.info("Roster importer disabled via ROSTER_IMPORT_ENABLED flag; skipping registration.")
        return

    department_code_length, section_code_length = get_code_lengths(app)
    state.update(
        {
            "department_code_length": department_code_length,
            "section_code_length": section_code_length,
            "max_upload_mb": get_max_upload_mb(app),
        }
    )
    _set_cli(app, enabled=True)
    app.logger.info(
        "Roster importer enabled (department code length=%s, section code length=%s, max upload=%sMB)",
        department_code_length,
        section_code_length,
        state["max_upload_mb"],
    )


def get_roster_state(app: Flask) -> dict[str, Any]:
    """Return a copy of the roster importer extension state."""
    return dict(_ensure_extension_state(app))
