"""Command Line Interface for the EH Doctor catalog.

This module provides a CLI using Typer for browsing and editing the disease
catalog. Each invocation is one session: storage is opened, the device pass
key is checked (or created on first use), and the command runs against the
unlocked catalog.

Security Impact:
    - The pass-key gate is a local deterrent only, not access control
    - Pass keys are read with hidden prompts or from EH_PASS_KEY, never echoed
    - Exports are plaintext JSON; the pass key does not protect them
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from src.adapters.exporters import export_catalog_csv
from src.domain.catalog import Disease, Reference, ReferenceKind
from src.domain.links import build_search_url
from src.domain.ports import CatalogError
from src.domain.services import DiseaseStore, GateMode
from src.domain.services.document_codec import export_filename
from src.infrastructure.logging_config import setup_logging
from src.infrastructure.settings import get_settings
from src.main import CatalogSession, open_session

# Initialize Typer app and Rich console
app = typer.Typer(
    name="eh-doctor",
    help="EH Doctor: disease catalog for a small practice",
    add_completion=False
)
console = Console()


# ============================================================================
# Session helpers
# ============================================================================

def _unlock(session: CatalogSession, pass_key: Optional[str]) -> None:
    """Pass the session through the gate or exit with code 1."""
    gate = session.gate

    if gate.mode == GateMode.CREATE:
        console.print(
            f"[yellow]No pass key on this device yet.[/yellow] "
            f"Choose one with at least {gate.min_length} characters."
        )
        secret = pass_key or typer.prompt("New pass key", hide_input=True, confirmation_prompt=True)
        result = gate.create_credential(secret)
        if result.is_failure():
            console.print(f"[red]✗[/red] {escape(result.error)}")
            raise typer.Exit(code=1)
        console.print("[green]✓[/green] Pass key created for this device")
        return

    secret = pass_key or typer.prompt("Pass key", hide_input=True)
    if not gate.attempt_unlock(secret):
        console.print(f"[red]✗[/red] {escape(gate.last_error or 'Unlock failed.')}")
        raise typer.Exit(code=1)


@contextmanager
def _unlocked_store(ctx: typer.Context) -> Iterator[DiseaseStore]:
    """Open a session, unlock it and yield its store; storage is always closed."""
    try:
        session = open_session(get_settings())
    except CatalogError as e:
        console.print(f"[red]✗[/red] Failed to open storage: {escape(str(e))}")
        raise typer.Exit(code=1)

    try:
        _unlock(session, (ctx.obj or {}).get("pass_key"))
        yield session.store
    except CatalogError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    finally:
        session.close()


def _resolve_disease(store: DiseaseStore, disease_id: str) -> Disease:
    """Find a disease by full id or unique id prefix, or exit with code 1."""
    disease = store.get_disease(disease_id)
    if disease is not None:
        return disease

    matches = [d for d in store.diseases if d.id.startswith(disease_id)]
    if len(matches) == 1:
        return matches[0]

    if matches:
        console.print(f"[red]✗[/red] Id prefix '{escape(disease_id)}' matches {len(matches)} diseases")
    else:
        console.print(f"[red]✗[/red] No disease with id '{escape(disease_id)}'")
    raise typer.Exit(code=1)


def _print_disease(disease: Disease) -> None:
    body = Table(show_header=False, box=None, padding=(0, 2))
    body.add_row("Id:", disease.id)
    body.add_row("Symptoms:", escape(", ".join(disease.symptoms)) or "[dim]none[/dim]")
    body.add_row("Lab tests:", escape(", ".join(disease.lab_tests)) or "[dim]none[/dim]")
    body.add_row("Diagnosis:", escape(disease.diagnosis_notes) or "[dim]none[/dim]")
    body.add_row("Treatment:", escape(disease.treatment) or "[dim]none[/dim]")
    console.print(Panel(body, title=escape(disease.name or "(unnamed)"), title_align="left"))

    if disease.references:
        console.print("[bold]References:[/bold]")
        for ref in disease.references:
            detail = ref.url if ref.kind == ReferenceKind.GOOGLE else ref.note
            console.print(
                f"  [cyan]{ref.id}[/cyan] ({ref.kind.value}) {escape(ref.label)}: {escape(detail)}",
                soft_wrap=True,
            )


# ============================================================================
# Gate commands
# ============================================================================

@app.command("passkey-reset")
def passkey_reset(
    new_pass_key: Optional[str] = typer.Option(
        None, "--new-pass-key", help="New pass key (prompted if omitted)"
    ),
) -> None:
    """Replace the device pass key.

    The old pass key keeps working until the new one has been accepted.
    """
    session = open_session(get_settings())
    try:
        gate = session.gate
        gate.reset_credential()
        secret = new_pass_key or typer.prompt("New pass key", hide_input=True, confirmation_prompt=True)
        result = gate.create_credential(secret)
        if result.is_failure():
            gate.cancel_reset()
            console.print(f"[red]✗[/red] {escape(result.error)} The previous pass key is unchanged.")
            raise typer.Exit(code=1)
        console.print("[green]✓[/green] Pass key replaced")
    finally:
        session.close()


# ============================================================================
# Catalog commands
# ============================================================================

@app.command("list")
def list_diseases(
    ctx: typer.Context,
    query: str = typer.Argument("", help="Text to search for (name, notes, treatment, symptoms, lab tests)"),
) -> None:
    """List diseases, optionally filtered by a search query.

    Examples:
        eh-doctor list
        eh-doctor list pallor
    """
    with _unlocked_store(ctx) as store:
        results = store.search(query)
        if not results:
            console.print(f"[yellow]No diseases match '{escape(query)}'[/yellow]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Name", min_width=12)
        table.add_column("Symptoms")
        table.add_column("Refs", justify="right")
        for disease in results:
            table.add_row(
                disease.id[:8],
                escape(disease.name or "(unnamed)"),
                escape(", ".join(disease.symptoms)),
                str(len(disease.references)),
            )
        console.print(table)
        console.print(f"[dim]{len(results)} of {len(store.diseases)} diseases[/dim]")


@app.command()
def show(
    ctx: typer.Context,
    disease_id: str = typer.Argument(..., help="Disease id (or unique prefix)"),
) -> None:
    """Show one disease with its references."""
    with _unlocked_store(ctx) as store:
        _print_disease(_resolve_disease(store, disease_id))


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Option("", "--name", "-n", help="Disease name"),
    symptoms: Optional[List[str]] = typer.Option(None, "--symptom", "-s", help="Symptom (repeatable)"),
    lab_tests: Optional[List[str]] = typer.Option(None, "--lab-test", "-l", help="Lab test (repeatable)"),
    notes: str = typer.Option("", "--notes", help="Diagnosis notes"),
    treatment: str = typer.Option("", "--treatment", help="Treatment notes"),
) -> None:
    """Add a disease to the top of the catalog.

    Examples:
        eh-doctor add --name "Malaria" -s fever -s chills -l "Blood smear"
    """
    with _unlocked_store(ctx) as store:
        disease = store.add_disease()
        store.update_disease(Disease(
            id=disease.id,
            name=name,
            symptoms=list(symptoms or []),
            lab_tests=list(lab_tests or []),
            diagnosis_notes=notes,
            treatment=treatment,
        ))
        console.print(f"[green]✓[/green] Added disease {disease.id}")


@app.command()
def update(
    ctx: typer.Context,
    disease_id: str = typer.Argument(..., help="Disease id (or unique prefix)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New name"),
    symptoms: Optional[List[str]] = typer.Option(None, "--symptom", "-s", help="Replace symptoms (repeatable)"),
    lab_tests: Optional[List[str]] = typer.Option(None, "--lab-test", "-l", help="Replace lab tests (repeatable)"),
    notes: Optional[str] = typer.Option(None, "--notes", help="New diagnosis notes"),
    treatment: Optional[str] = typer.Option(None, "--treatment", help="New treatment notes"),
    clear_symptoms: bool = typer.Option(False, "--clear-symptoms", help="Remove every symptom"),
    clear_lab_tests: bool = typer.Option(False, "--clear-lab-tests", help="Remove every lab test"),
) -> None:
    """Change fields of an existing disease. Options left out are kept."""
    with _unlocked_store(ctx) as store:
        disease = _resolve_disease(store, disease_id)
        changes = {
            "name": name,
            "symptoms": [] if clear_symptoms else (list(symptoms) if symptoms else None),
            "lab_tests": [] if clear_lab_tests else (list(lab_tests) if lab_tests else None),
            "diagnosis_notes": notes,
            "treatment": treatment,
        }
        changes = {field: value for field, value in changes.items() if value is not None}
        if not changes:
            console.print("[yellow]⚠[/yellow] Nothing to update")
            raise typer.Exit(code=1)

        next_disease = Disease.model_validate({**disease.model_dump(), **changes})
        store.update_disease(next_disease)
        console.print(f"[green]✓[/green] Updated disease {disease.id}")


@app.command()
def delete(
    ctx: typer.Context,
    disease_id: str = typer.Argument(..., help="Disease id (or unique prefix)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a disease after confirmation."""
    with _unlocked_store(ctx) as store:
        disease = _resolve_disease(store, disease_id)

        def confirm(target: Disease) -> bool:
            return yes or typer.confirm(f"Delete '{target.name or target.id}'?", default=False)

        if store.delete_disease(disease.id, confirm):
            console.print(f"[green]✓[/green] Deleted disease {disease.id}")
        else:
            console.print("[yellow]⚠[/yellow] Delete cancelled")


@app.command("add-ref")
def add_ref(
    ctx: typer.Context,
    disease_id: str = typer.Argument(..., help="Disease id (or unique prefix)"),
    label: str = typer.Option("", "--label", help="Reference label"),
    url: Optional[str] = typer.Option(None, "--url", help="Attach a link"),
    note: Optional[str] = typer.Option(None, "--note", help="Attach a free-text note"),
    google: bool = typer.Option(False, "--google", help="Attach a web search link for the disease name"),
) -> None:
    """Attach a link or note reference to a disease.

    Examples:
        eh-doctor add-ref 3fa2 --google
        eh-doctor add-ref 3fa2 --label "WHO" --url https://www.who.int/
        eh-doctor add-ref 3fa2 --label "Follow-up" --note "Recheck in 4 weeks"
    """
    chosen = [option for option in (url is not None, note is not None, google) if option]
    if len(chosen) != 1:
        console.print("[red]✗[/red] Give exactly one of --url, --note or --google")
        raise typer.Exit(code=1)

    with _unlocked_store(ctx) as store:
        disease = _resolve_disease(store, disease_id)
        if google:
            reference = Reference.google_search(
                disease.name,
                label=label or None,
                suffix=get_settings().search_suffix,
            )
        elif url is not None:
            reference = Reference.link(label=label, url=url)
        else:
            reference = Reference.text_note(label=label, note=note)

        attached = store.add_reference(disease.id, reference)
        console.print(f"[green]✓[/green] Added {attached.kind.value} reference {attached.id}")


@app.command("remove-ref")
def remove_ref(
    ctx: typer.Context,
    disease_id: str = typer.Argument(..., help="Disease id (or unique prefix)"),
    reference_id: str = typer.Argument(..., help="Reference id"),
) -> None:
    """Detach a reference from a disease."""
    with _unlocked_store(ctx) as store:
        disease = _resolve_disease(store, disease_id)
        if not store.remove_reference(disease.id, reference_id):
            console.print(f"[red]✗[/red] No reference '{escape(reference_id)}' on this disease")
            raise typer.Exit(code=1)
        console.print(f"[green]✓[/green] Removed reference {reference_id}")


@app.command()
def clinic(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", help="Clinic name"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Clinic owner"),
) -> None:
    """Show or change the clinic name and owner."""
    with _unlocked_store(ctx) as store:
        if name is not None or owner is not None:
            store.update_clinic(name=name, owner=owner)
            console.print("[green]✓[/green] Clinic details updated")
        info = store.document.clinic
        console.print(f"Clinic: {escape(info.name) or '[dim]unset[/dim]'}")
        console.print(f"Owner:  {escape(info.owner) or '[dim]unset[/dim]'}")


@app.command()
def link(
    ctx: typer.Context,
    disease_id: str = typer.Argument(..., help="Disease id (or unique prefix)"),
) -> None:
    """Print a web search link for a disease (nothing is sent by this app)."""
    with _unlocked_store(ctx) as store:
        disease = _resolve_disease(store, disease_id)
        typer.echo(build_search_url(disease.name, get_settings().search_suffix))


# ============================================================================
# Export / import
# ============================================================================

@app.command()
def export(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (default: EH-doctor-data-<date>.json in EH_EXPORT_DIR)"
    ),
) -> None:
    """Export the whole catalog to a JSON file (plaintext)."""
    with _unlocked_store(ctx) as store:
        target = output or Path(get_settings().export_dir) / export_filename()
        try:
            target.write_bytes(store.export_document())
        except OSError as e:
            console.print(f"[red]✗[/red] Failed to write {escape(str(target))}: {escape(str(e))}")
            raise typer.Exit(code=1)
        console.print(f"[green]✓[/green] Exported {len(store.diseases)} diseases to {escape(str(target))}")


@app.command("import")
def import_(
    ctx: typer.Context,
    input_file: Path = typer.Argument(..., help="JSON file produced by export", exists=True, dir_okay=False),
    yes: bool = typer.Option(False, "--yes", "-y", help="Replace without asking"),
) -> None:
    """Replace the whole catalog with the contents of an export file."""
    with _unlocked_store(ctx) as store:
        if not yes and not typer.confirm(
            f"Replace the current catalog ({len(store.diseases)} diseases)?", default=False
        ):
            console.print("[yellow]⚠[/yellow] Import cancelled")
            return

        try:
            raw = input_file.read_bytes()
        except OSError as e:
            console.print(f"[red]✗[/red] Failed to read {escape(str(input_file))}: {escape(str(e))}")
            raise typer.Exit(code=1)

        result = store.import_document(raw, source=input_file.name)
        if result.is_failure():
            console.print(f"[red]✗[/red] {escape(result.error)} The current catalog is unchanged.")
            raise typer.Exit(code=1)
        console.print(f"[green]✓[/green] Imported {len(result.value.diseases)} diseases")


@app.command("export-csv")
def export_csv(
    ctx: typer.Context,
    output: Path = typer.Argument(..., help="CSV file to write"),
) -> None:
    """Write the catalog as a one-row-per-disease CSV table (export only)."""
    with _unlocked_store(ctx) as store:
        result = export_catalog_csv(store.document, output)
        if result.is_failure():
            console.print(f"[red]✗[/red] {escape(result.error)}")
            raise typer.Exit(code=1)
        console.print(f"[green]✓[/green] Wrote {escape(str(result.value))}")


# ============================================================================
# Info
# ============================================================================

@app.command()
def info() -> None:
    """Display configuration and device information (no pass key needed)."""
    settings = get_settings()
    session = open_session(settings)
    try:
        storage_config = settings.storage_config
        console.print("[bold blue]System Information[/bold blue]\n")

        info_table = Table(show_header=False, box=None, padding=(0, 2))
        info_table.add_row("Application:", settings.app_name)
        info_table.add_row("Version:", settings.app_version)
        info_table.add_row("Storage Backend:", storage_config.backend.value)
        if storage_config.path:
            info_table.add_row("Storage Path:", escape(storage_config.path))
        info_table.add_row("Device Id:", session.device_id)
        info_table.add_row("Pass Key:", "Set" if session.gate.has_credential() else "Not set")
        info_table.add_row("Search Suffix:", escape(settings.search_suffix))
        console.print(info_table)
    finally:
        session.close()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    pass_key: Optional[str] = typer.Option(
        None, "--pass-key", envvar="EH_PASS_KEY", help="Device pass key (prompted if omitted)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    version: bool = typer.Option(False, "--version", help="Show version information"),
) -> None:
    """EH Doctor: disease catalog for a small practice."""
    settings = get_settings()
    setup_logging(use_json=settings.log_json, log_level="DEBUG" if verbose else settings.log_level)

    if version:
        console.print(f"{settings.app_name} v{settings.app_version}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()

    ctx.obj = {"pass_key": pass_key}


if __name__ == "__main__":
    app()
