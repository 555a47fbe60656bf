"""
Operator commands for roster imports (``flask roster ...``).

``preview`` never writes; ``commit`` requires ``--yes`` so an operator has to
confirm after reviewing a preview. Snapshot and history commands read the
audit trail.
"""

from __future__ import annotations

import json
from pathlib import Path

import click
from flask.cli import ScriptInfo

from roster_app.errors import OrganizationNotFound, RosterImportError
from roster_app.importer.adapters import read_roster_file
from roster_app.importer.pipeline import (
    CommitResult,
    ParsedBatch,
    PreviewResult,
    RowParserSettings,
    SqlAlchemyRosterUnitOfWork,
    commit_import,
    compare_snapshots,
    create_organization_snapshot,
    get_change_logs_by_batch_id,
    load_organization_snapshot,
    preview_import,
    process_rows,
    save_organization_snapshot,
)
from roster_app.models import Organization, db
from roster_app.utils.importer import get_code_lengths, get_max_upload_mb, is_roster_import_enabled


@click.group(name="roster", invoke_without_command=True)
@click.pass_context
def roster_cli(ctx):
    """
    Roster import commands.

    Lists organizations when invoked without a subcommand.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if not is_roster_import_enabled(app):
        raise click.ClickException(
            "Roster import is disabled via ROSTER_IMPORT_ENABLED=false. Enable it to run roster commands."
        )
    if ctx.invoked_subcommand is None:
        organizations = db.session.scalars(db.select(Organization).order_by(Organization.id)).all()
        if not organizations:
            click.echo("No organizations configured. Create one with 'flask roster org-create'.")
            return
        click.echo("Organizations:")
        for organization in organizations:
            click.echo(f"  - [{organization.id}] {organization.name} ({organization.slug})")


def get_disabled_roster_group() -> click.Group:
    """
    Return a minimal command group that informs the operator roster import is disabled.
    """

    @click.group(name="roster", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Roster commands are unavailable because ROSTER_IMPORT_ENABLED=false.")

    return disabled_group


def _resolve_organization(value: str) -> Organization:
    organization = Organization.find_by_id(int(value)) if value.isdigit() else Organization.find_by_slug(value)
    if organization is None:
        raise click.ClickException(f"Organization '{value}' not found.")
    return organization


def _load_batch(app, file_path: Path, encoding: str | None) -> ParsedBatch:
    try:
        read_result = read_roster_file(file_path, max_upload_mb=get_max_upload_mb(app), encoding=encoding)
    except RosterImportError as exc:
        raise click.ClickException(str(exc)) from exc
    batch = process_rows(read_result.rows, RowParserSettings.from_config(app.config))
    batch.rows_skipped += read_result.statistics.rows_skipped_blank
    return batch


def _format_preview(organization: Organization, preview: PreviewResult) -> str:
    counts = preview.counts()
    lines = [f"Preview for {organization.name} (id={organization.id}):"]
    lines.extend(f"  {name:<20}: {value}" for name, value in counts.items())
    for entry in preview.transferred_employees:
        lines.append(f"  transfer  {entry.employee.employee_number} {entry.employee.name}: {entry.old_unit} → {entry.new_unit}")
    for view in preview.retired_employees:
        lines.append(f"  retire    {view.employee_number} {view.name}")
    for duplicate in preview.excluded_duplicates:
        lines.append(
            f"  duplicate {duplicate.employee.employee_number} (row {duplicate.employee.row_number}): "
            f"{duplicate.reason}; kept {duplicate.kept_employee_number}"
        )
    for error in preview.errors:
        lines.append(f"  error     row {error.row_number}: {error.message}")
    return "\n".join(lines)


def _format_commit(result: CommitResult) -> str:
    lines = [result.message, f"  batch_id            : {result.batch_id}"]
    if result.statistics is not None:
        lines.extend(f"  {name:<20}: {value}" for name, value in result.statistics.as_dict().items())
    return "\n".join(lines)


@roster_cli.command("org-create")
@click.option("--name", required=True, help="Display name of the organization.")
@click.option("--slug", required=True, help="Unique short identifier.")
@click.option("--description", default=None, help="Optional description.")
def org_create(name: str, slug: str, description: str | None):
    """Create an organization to import rosters into."""
    if Organization.find_by_slug(slug) is not None:
        raise click.ClickException(f"Organization slug '{slug}' already exists.")
    organization = Organization(name=name, slug=slug, description=description, is_active=True)
    db.session.add(organization)
    db.session.commit()
    click.echo(f"Created organization {organization.id} ({organization.slug}).")


@roster_cli.command("preview")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Roster file (.csv or .xlsx).",
)
@click.option("--organization", "organization_ref", required=True, help="Organization id or slug.")
@click.option("--encoding", default=None, help="CSV encoding (default: try utf-8, then cp932).")
@click.option("--json", "as_json", is_flag=True, help="Emit the full preview as JSON.")
@click.pass_context
def roster_preview(ctx, file_path: Path, organization_ref: str, encoding: str | None, as_json: bool):
    """Show what a commit of FILE would change, without writing anything."""
    app = ctx.ensure_object(ScriptInfo).load_app()
    organization = _resolve_organization(organization_ref)
    batch = _load_batch(app, file_path, encoding)
    try:
        preview = preview_import(SqlAlchemyRosterUnitOfWork(), organization.id, batch)
    except OrganizationNotFound as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(json.dumps(preview.as_dict(), indent=2, ensure_ascii=False))
    else:
        click.echo(_format_preview(organization, preview))


@roster_cli.command("commit")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Roster file (.csv or .xlsx).",
)
@click.option("--organization", "organization_ref", required=True, help="Organization id or slug.")
@click.option("--actor", default="cli", show_default=True, help="Identity recorded in the audit trail.")
@click.option("--encoding", default=None, help="CSV encoding (default: try utf-8, then cp932).")
@click.option("--yes", "confirmed", is_flag=True, help="Confirm the import after reviewing a preview.")
@click.option("--json", "as_json", is_flag=True, help="Emit the commit result as JSON.")
@click.pass_context
def roster_commit(
    ctx,
    file_path: Path,
    organization_ref: str,
    actor: str,
    encoding: str | None,
    confirmed: bool,
    as_json: bool,
):
    """Apply FILE to the organization in a single transaction."""
    if not confirmed:
        raise click.ClickException(
            "Refusing to commit without --yes. Review 'flask roster preview' output first, then re-run with --yes."
        )
    app = ctx.ensure_object(ScriptInfo).load_app()
    organization = _resolve_organization(organization_ref)
    batch = _load_batch(app, file_path, encoding)
    department_code_length, section_code_length = get_code_lengths(app)

    try:
        result = commit_import(
            SqlAlchemyRosterUnitOfWork(),
            batch.employees,
            organization_id=organization.id,
            actor=actor,
            department_code_length=department_code_length,
            section_code_length=section_code_length,
        )
    except OrganizationNotFound as exc:
        raise click.ClickException(str(exc)) from exc

    if not result.success:
        raise click.ClickException(result.message)

    if as_json:
        payload = result.as_dict()
        payload["row_errors"] = [error.as_dict() for error in batch.errors]
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return
    click.echo(_format_commit(result))
    for error in batch.errors:
        click.echo(f"  row {error.row_number}: {error.message}")


@roster_cli.command("snapshot")
@click.option("--organization", "organization_ref", required=True, help="Organization id or slug.")
@click.option("--label", default=None, help="Label stored with a saved snapshot.")
@click.option("--save", is_flag=True, help="Persist the snapshot for later drift comparison.")
def roster_snapshot(organization_ref: str, label: str | None, save: bool):
    """Print the current organization tree as JSON."""
    organization = _resolve_organization(organization_ref)
    snapshot = create_organization_snapshot(organization.id)
    payload = snapshot.as_dict()
    if save:
        record = save_organization_snapshot(snapshot, label=label)
        db.session.commit()
        payload["snapshot_id"] = record.id
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@roster_cli.command("drift")
@click.option("--organization", "organization_ref", required=True, help="Organization id or slug.")
@click.option("--since-id", "snapshot_id", required=True, type=int, help="Saved snapshot id to compare against.")
def roster_drift(organization_ref: str, snapshot_id: int):
    """Compare a saved snapshot with the current organization tree."""
    organization = _resolve_organization(organization_ref)
    baseline = load_organization_snapshot(snapshot_id)
    if baseline is None:
        raise click.ClickException(f"Snapshot {snapshot_id} not found.")
    if baseline.organization_id != organization.id:
        raise click.ClickException(
            f"Snapshot {snapshot_id} belongs to organization {baseline.organization_id}, not {organization.id}."
        )
    diff = compare_snapshots(baseline, create_organization_snapshot(organization.id))
    payload = diff.as_dict()
    payload["has_drift"] = diff.has_drift
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@roster_cli.command("history")
@click.option("--batch-id", required=True, help="Batch id printed by 'flask roster commit'.")
def roster_history(batch_id: str):
    """List change-log entries recorded by one import."""
    entries = get_change_logs_by_batch_id(batch_id)
    if not entries:
        raise click.ClickException(f"No change-log entries found for batch {batch_id}.")
    for entry in entries:
        change_type = entry.change_type.value if hasattr(entry.change_type, "value") else str(entry.change_type)
        click.echo(f"{change_type:<11} {entry.entity_type}:{entry.entity_id} {entry.description or ''}")
