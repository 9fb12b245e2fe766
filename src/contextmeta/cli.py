# src/contextmeta/cli.py
"""
contextmeta Command Line Interface (CLI).

This module implements the terminal interface over :class:`MetadataService`
using `typer` and `rich`. Every command builds its own service for the
configured context directory, runs one operation to completion and exits.

Usage
-----
    # What is on disk
    $ contextmeta status

    # Logical metadata (snapshot + pending deltas)
    $ contextmeta show

    # Record an update through the delta journal
    $ contextmeta update essential.projects iron-tracker --op add

    # Fold the journal into the snapshot now
    $ contextmeta compact

Exit codes: 0 on success, 1 when the store reports an error (corrupt journal,
unwritable files, invalid update).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from contextmeta.core.contracts.delta import DeltaOp
from contextmeta.core.errors import JournalCorruptionError, MetadataStoreError
from contextmeta.core.metadata.service import MetadataService
from contextmeta.core.settings import load_settings

load_dotenv()

app = typer.Typer(
    help="contextmeta: session metadata as a snapshot plus a delta journal.",
    rich_markup_mode="markdown",
    no_args_is_help=True,
)
console = Console()


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _service(ctx: typer.Context) -> MetadataService:
    """Build the service for this invocation (``--home`` overrides settings)."""
    home: Path | None = ctx.obj.get("home") if ctx.obj else None
    return MetadataService.from_settings(load_settings(), home=home)


def _fail(message: str, exc: Exception) -> typer.Exit:
    console.print(f"[bold red]❌ {message}:[/bold red] {exc}")
    if isinstance(exc, JournalCorruptionError):
        console.print(
            "[yellow]Pending deltas cannot be replayed.[/yellow] "
            "Inspect the journal, delete it to drop them, or run "
            "`contextmeta show --ignore-journal` to view the base snapshot."
        )
    return typer.Exit(code=1)


def _render_summary(snapshot: dict[str, Any], title: str) -> None:
    essential = snapshot.get("essential", {})
    table = Table(show_header=False, box=None)
    table.add_row("Version", str(snapshot.get("version")))
    table.add_row("Last updated", str(snapshot.get("lastUpdated")))
    table.add_row("Last session", str(essential.get("lastSession")))
    table.add_row("Stack", str(essential.get("stack")))
    table.add_row("Projects", ", ".join(str(p) for p in essential.get("projects", [])) or "-")
    table.add_row("Sessions", str(essential.get("sessionCount", 0)))
    table.add_row("History", str(len(snapshot.get("sessionHistory", []))))
    console.print(Panel(table, title=title, border_style="cyan"))


def _parse_value(raw: str, as_json: bool) -> Any:
    if not as_json:
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"VALUE is not valid JSON: {e}") from e


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.callback()  # type: ignore[misc]
def main(
    ctx: typer.Context,
    home: Annotated[
        Path | None,
        typer.Option(
            "--home",
            file_okay=False,
            dir_okay=True,
            help="Context directory (defaults to CONTEXTMETA_HOME or ~/.config/opencode).",
        ),
    ] = None,
) -> None:
    """Session metadata store: snapshot + delta journal + compaction."""
    ctx.obj = {"home": home}


@app.command()  # type: ignore[misc]
def status(ctx: typer.Context) -> None:
    """Show which files exist and how many deltas are pending."""
    st = _service(ctx).status()
    mark = {True: "✅", False: "❌"}

    console.print(f"[bold]📊 Context status[/bold] ({st.home})")
    console.print(f"   Metadata: {mark[st.snapshot_present]}")
    console.print(f"   Compressed: {mark[st.compressed_present]}")
    console.print(f"   Deltas: {mark[st.journal_present]}")
    if st.version is not None:
        console.print(f"   Version: {st.version}")
        console.print(f"   Last session: {st.last_session or 'Unknown'}")
        console.print(f"   Session count: {st.session_count or 0}")
    if st.journal_present:
        console.print(f"   Pending deltas: {st.pending_deltas}")


@app.command()  # type: ignore[misc]
def show(
    ctx: typer.Context,
    ignore_journal: Annotated[
        bool,
        typer.Option(
            "--ignore-journal",
            help="Show the base snapshot only (use when the journal is corrupt).",
        ),
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print raw JSON.")] = False,
) -> None:
    """Load the logical metadata (snapshot + pending deltas)."""
    try:
        snapshot = _service(ctx).load_metadata(skip_journal=ignore_journal)
    except MetadataStoreError as e:
        raise _fail("Could not load metadata", e) from e

    if as_json:
        console.print_json(data=snapshot)
    else:
        _render_summary(snapshot, "Base snapshot" if ignore_journal else "Metadata")


@app.command()  # type: ignore[misc]
def validate(ctx: typer.Context) -> None:
    """Validate the stored snapshot against the schema."""
    console.print("🔍 Validating context...")
    outcome = _service(ctx).validate_stored()
    if outcome is None:
        console.print("[yellow]⚠️  No metadata file found[/yellow]")
        return
    if outcome.is_err():
        console.print("[bold red]❌ Context is invalid[/bold red]")
        for error in outcome.unwrap_err():
            console.print(f"   - {error}")
        console.print("Run `contextmeta repair` to fix it.")
        raise typer.Exit(code=1)

    snapshot = outcome.unwrap()
    console.print("[bold green]✅ Context is valid[/bold green]")
    console.print(f"   Version: {snapshot.get('version')}")
    console.print(f"   Last updated: {snapshot.get('lastUpdated')}")
    console.print(f"   Sessions: {snapshot['essential'].get('sessionCount', 0)}")


@app.command()  # type: ignore[misc]
def repair(ctx: typer.Context) -> None:
    """Repair the stored snapshot in place if it fails validation."""
    console.print("🔧 Repairing context...")
    try:
        outcome = _service(ctx).repair_stored()
    except MetadataStoreError as e:
        raise _fail("Could not repair context", e) from e

    if outcome is None:
        console.print("[yellow]⚠️  No metadata file to repair[/yellow]")
        return
    snapshot, errors = outcome
    if not errors:
        console.print("[green]✅ Context already valid; nothing to repair[/green]")
        return
    for error in errors:
        console.print(f"   - fixed {error}")
    console.print("[bold green]✅ Context repaired[/bold green]")
    console.print(f"   Version: {snapshot['version']}")
    console.print(f"   Last session: {snapshot['essential']['lastSession']}")


@app.command()  # type: ignore[misc]
def compact(ctx: typer.Context) -> None:
    """Fold all pending deltas into the base snapshot now."""
    service = _service(ctx)
    pending = service.journal.count()
    try:
        snapshot = service.compact_now()
    except MetadataStoreError as e:
        raise _fail("Compaction failed", e) from e
    console.print(f"[bold green]✅ Compacted {pending} deltas into base context[/bold green]")
    console.print(f"   Sessions: {snapshot['essential']['sessionCount']}")


@app.command()  # type: ignore[misc]
def update(
    ctx: typer.Context,
    field: Annotated[str, typer.Argument(help="Dotted path, e.g. 'essential.stack'.")],
    value: Annotated[str, typer.Argument(help="New value (a string unless --json).")],
    op: Annotated[
        DeltaOp,
        typer.Option("--op", "-o", case_sensitive=False, help="Delta operation."),
    ] = DeltaOp.SET,
    as_json: Annotated[
        bool,
        typer.Option("--json", "-j", help="Parse VALUE as JSON (numbers, lists, objects)."),
    ] = False,
) -> None:
    """Append one delta to the journal (compacting at the threshold)."""
    payload = _parse_value(value, as_json)
    try:
        compacted = _service(ctx).update(field, payload, op)
    except MetadataStoreError as e:
        raise _fail("Could not save delta", e) from e

    console.print(f"💾 Delta saved: {op.value} {field}")
    if compacted:
        console.print("[green]📦 Journal reached the threshold and was compacted[/green]")


@app.command()  # type: ignore[misc]
def session(
    ctx: typer.Context,
    session_type: Annotated[str, typer.Argument(help="Kind of session, e.g. 'feature'.")],
    summary: Annotated[str, typer.Argument(help="One-line summary of the session.")],
) -> None:
    """Record a finished session (last session, count, history)."""
    try:
        entry = _service(ctx).record_session(session_type, summary)
    except MetadataStoreError as e:
        raise _fail("Could not record session", e) from e
    console.print(f"💾 Session saved with delta tracking ({entry.timestamp})")


@app.command()  # type: ignore[misc]
def compress(ctx: typer.Context) -> None:
    """Rebuild the gzip snapshot from the plain JSON file."""
    try:
        plain, packed = _service(ctx).compress()
    except MetadataStoreError as e:
        raise _fail("Could not compress metadata", e) from e
    ratio = (1 - packed / plain) * 100 if plain else 0.0
    console.print(f"[green]✅ Metadata compressed: {ratio:.1f}% smaller[/green]")


@app.command()  # type: ignore[misc]
def decompress(ctx: typer.Context) -> None:
    """Rebuild the plain JSON snapshot from the gzip file."""
    try:
        size = _service(ctx).decompress()
    except MetadataStoreError as e:
        raise _fail("Could not decompress metadata", e) from e
    console.print(f"[green]✅ Metadata decompressed ({size} bytes)[/green]")


@app.command()  # type: ignore[misc]
def migrate(
    ctx: typer.Context,
    source: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Markdown session context (e.g. SESSION_CONTEXT_COMPLETE.md).",
        ),
    ],
) -> None:
    """Seed the base snapshot from a markdown session-context file."""
    try:
        snapshot = _service(ctx).migrate_markdown(source)
    except MetadataStoreError as e:
        raise _fail("Migration failed", e) from e
    console.print("[bold green]✅ Metadata saved to context-metadata.json[/bold green]")
    _render_summary(snapshot, "Migrated")


@app.command()  # type: ignore[misc]
def modularize(
    ctx: typer.Context,
    out: Annotated[
        Path | None,
        typer.Option("--out", file_okay=False, help="Target directory (default: HOME/context)."),
    ] = None,
) -> None:
    """Split the logical metadata into context/*.json module files."""
    try:
        written = _service(ctx).modularize(out)
    except MetadataStoreError as e:
        raise _fail("Could not modularize context", e) from e
    console.print(f"[green]✅ Context modularized[/green] ({len(written)} files)")
    console.print(f"   Location: {written[0].parent}")


if __name__ == "__main__":
    app()
