from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.markup import escape
from rich.prompt import Prompt, Confirm
from rich.table import Table

# ----------------------------
# Workspace (runtime data) paths
# ----------------------------
from textile_ledger.paths import (
    workspace_root,
    ensure_workspace,
    ENV_FILENAME,
    env_file_path,
)

from textile_ledger.ai import InsightService, InsightSlot
from textile_ledger.config import Settings
from textile_ledger.dates import pretty_timestamp, today_iso
from textile_ledger.db import KeyValueStore, get_db
from textile_ledger.errors import InsightBusy, LedgerError, PermissionDenied
from textile_ledger.identity import is_owner, load_or_create_identity
from textile_ledger.logs import setup_logging
from textile_ledger.records import DETAIL_FIELDS, RecordFields, TextileRecord, short_id
from textile_ledger.report import export_report_pdf
from textile_ledger.store import RecordStore, open_store
from textile_ledger.view import LedgerView, build_view

app = typer.Typer(add_completion=False, no_args_is_help=False)
console = Console()

DB_OPTION_HELP = "Path to SQLite database. Default: <workspace>/textile_ledger.sqlite"

_PROMPTS = {
    "dori_detail": "Dori detail",
    "warpin_detail": "Warpin detail",
    "bheem_detail": "Bheem detail",
    "delivery_detail": "Delivery detail",
}


# ----------------------------
# Session wiring
# ----------------------------
@dataclass
class Ledger:
    kv: KeyValueStore
    identity: str
    store: RecordStore
    settings: Settings
    insights: InsightService
    slot: InsightSlot


def open_ledger(db_path: Optional[Path] = None, settings: Optional[Settings] = None) -> Ledger:
    """Read persisted state once and wire the store, identity and AI helper together."""
    ensure_workspace()
    settings = settings or Settings.load()
    setup_logging(settings.log_level)

    kv = KeyValueStore(get_db(db_path))
    identity = load_or_create_identity(kv)
    store = open_store(kv, identity)
    return Ledger(
        kv=kv,
        identity=identity,
        store=store,
        settings=settings,
        insights=InsightService(settings),
        slot=InsightSlot(),
    )


# ----------------------------
# Helpers
# ----------------------------
def header(ledger: Optional[Ledger] = None):
    sub = f"Session: {ledger.identity}" if ledger else "Production ledger"
    console.print(Panel.fit(f"[bold]Textile Ledger[/bold]\n{sub}", border_style="cyan"))


def pause():
    console.print()
    input("Press Enter to continue...")


def shorten(s: str, n: int = 40) -> str:
    s = "" if s is None else str(s)
    return escape(s if len(s) <= n else s[: n - 1] + "…")


def fail(err: LedgerError) -> NoReturn:
    console.print(f"[red]{escape(str(err))}[/red]")
    raise typer.Exit(code=1)


def render_view(view: LedgerView, identity: str, *, query: str = "") -> None:
    if not view.groups:
        console.print(Panel.fit(
            "[bold]Ledger empty[/bold]\n[dim]No logs matching your criteria were found.[/dim]",
            border_style="yellow",
        ))
        return

    if query:
        console.print(f"[dim]Search:[/dim] {escape(query)}  [dim]({len(view)} match(es))[/dim]\n")

    for g in view.groups:
        t = Table(
            title=f"[bold]{g.label}[/bold]",
            title_justify="left",
            caption=f"{len(g.records)} Entries Today",
            caption_justify="right",
            show_header=True,
            header_style="bold magenta",
        )
        t.add_column("Batch ID", style="cyan", width=8)
        t.add_column("Dori Specification")
        t.add_column("Warping Log")
        t.add_column("Bheem Log")
        t.add_column("Dispatch / Delivery")
        t.add_column("Owner", width=12)
        for r in g.records:
            t.add_row(
                short_id(r),
                shorten(r.dori_detail),
                shorten(r.warpin_detail),
                shorten(r.bheem_detail),
                shorten(r.delivery_detail),
                "me" if is_owner(r, identity) else f"🔒 {shorten(r.created_by, 10)}",
            )
        console.print(t)
        console.print()


def render_record(r: TextileRecord, identity: str) -> None:
    t = Table(show_header=False, box=None)
    t.add_row("[dim]id[/dim]", escape(r.id))
    t.add_row("[dim]batch[/dim]", short_id(r))
    t.add_row("[dim]entry date[/dim]", r.entry_date)
    for attr, _key, label in DETAIL_FIELDS:
        t.add_row(f"[dim]{label.lower()}[/dim]", escape(getattr(r, attr)))
    owner = "me" if is_owner(r, identity) else escape(r.created_by)
    t.add_row("[dim]created by[/dim]", owner)
    t.add_row("[dim]created[/dim]", pretty_timestamp(r.created_at))
    t.add_row("[dim]updated[/dim]", pretty_timestamp(r.updated_at))
    console.print(t)


def prompt_fields(defaults: Optional[dict[str, str]] = None, entry_date: Optional[str] = None) -> RecordFields:
    defaults = defaults or {}
    values = {
        attr: Prompt.ask(_PROMPTS[attr], default=defaults.get(attr, "")).strip()
        for attr, _key, _label in DETAIL_FIELDS
    }
    while True:
        day = Prompt.ask("Entry date (YYYY-MM-DD)", default=entry_date or today_iso()).strip()
        try:
            return RecordFields(entry_date=day, **values)
        except LedgerError as e:
            console.print(f"[yellow]{escape(str(e))}[/yellow]")


def suggest_from_note(ledger: Ledger, note: str) -> dict[str, str]:
    note = (note or "").strip()
    if not note:
        return {}
    try:
        with console.status("Reading note…"):
            suggestion = ledger.slot.run(ledger.insights.extract, note)
    except InsightBusy as e:
        console.print(f"[yellow]{e}[/yellow]")
        return {}
    if suggestion is None:
        console.print("[yellow]Could not pre-fill from the note; enter the fields manually.[/yellow]")
        return {}
    console.print("[green]Pre-filled from note.[/green]")
    return suggestion


def ensure_can_modify(ledger: Ledger, r: TextileRecord, action: str) -> None:
    if not is_owner(r, ledger.identity):
        raise PermissionDenied(r.id, action)


# ----------------------------
# Menu-first entry
# ----------------------------
@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Launch the menu UI when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        run_menu(open_ledger(db_path))


def run_menu(ledger: Ledger):
    query = ""
    while True:
        console.clear()
        header(ledger)
        stats = ledger.store.stats()
        console.print(
            f"[dim]Total entries:[/dim] {stats.total_records}   "
            f"[dim]Last 24h:[/dim] {stats.recent_activity}   "
            f"[dim]Mine:[/dim] {stats.mine}"
            + (f"   [dim]Search:[/dim] [cyan]{escape(query)}[/cyan]" if query else "")
            + "\n"
        )

        menu = Table(show_header=False, box=None)
        menu.add_row("1.", "[bold]Browse[/bold] | entries grouped by day")
        menu.add_row("2.", "[bold]Search[/bold] | filter by batch, date or detail")
        menu.add_row("3.", "[bold]New entry[/bold] | log a batch (optional AI pre-fill)")
        menu.add_row("4.", "[bold]Edit entry[/bold] | your own entries only")
        menu.add_row("5.", "[bold]Delete entry[/bold] | your own entries only")
        menu.add_row("6.", "[bold]Analyze trends[/bold] | AI summary")
        menu.add_row("7.", "[bold]Report[/bold] | export current view to PDF")
        menu.add_row("0.", "Quit")
        console.print(menu)

        choice = Prompt.ask("\nChoose", choices=["1", "2", "3", "4", "5", "6", "7", "0"], default="1")

        try:
            if choice == "1":
                menu_browse(ledger, query)
            elif choice == "2":
                query = Prompt.ask("Search (empty clears)", default="").strip()
                menu_browse(ledger, query)
            elif choice == "3":
                menu_new_entry(ledger)
            elif choice == "4":
                menu_edit_entry(ledger)
            elif choice == "5":
                menu_delete_entry(ledger)
            elif choice == "6":
                menu_insights(ledger)
            elif choice == "7":
                menu_report(ledger, query)
            elif choice == "0":
                console.print("\nBye.\n")
                return
        except LedgerError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            pause()


def menu_browse(ledger: Ledger, query: str = ""):
    console.clear()
    header(ledger)
    render_view(build_view(ledger.store.records, query), ledger.identity, query=query)
    pause()


def menu_new_entry(ledger: Ledger):
    console.clear()
    header(ledger)
    console.print("[bold]Daily entry[/bold]\n")

    note = Prompt.ask("Paste a note to pre-fill with AI (optional)", default="").strip()
    defaults = suggest_from_note(ledger, note)

    fields = prompt_fields(defaults)
    r = ledger.store.create(fields)
    console.print(f"[green]Saved[/green] batch [cyan]{short_id(r)}[/cyan] for {r.entry_date}.")
    pause()


def menu_edit_entry(ledger: Ledger):
    console.clear()
    header(ledger)
    console.print("[bold]Edit entry[/bold]\n")

    ref = Prompt.ask("Batch ID or id", default="").strip()
    if not ref:
        return
    r = ledger.store.find(ref)
    ensure_can_modify(ledger, r, "edit")

    current = {attr: getattr(r, attr) for attr, _key, _label in DETAIL_FIELDS}
    fields = prompt_fields(current, entry_date=r.entry_date)
    updated = ledger.store.update(r.id, fields)
    console.print(f"[green]Updated[/green] batch [cyan]{short_id(updated)}[/cyan].")
    pause()


def menu_delete_entry(ledger: Ledger):
    console.clear()
    header(ledger)
    console.print("[bold]Delete entry[/bold]\n")

    ref = Prompt.ask("Batch ID or id", default="").strip()
    if not ref:
        return
    r = ledger.store.find(ref)
    ensure_can_modify(ledger, r, "delete")

    render_record(r, ledger.identity)
    if Confirm.ask("\nAre you sure you want to delete this entry?", default=False):
        ledger.store.delete(r.id)
        console.print("[green]Deleted.[/green]")
    else:
        console.print("[yellow]Kept.[/yellow]")
    pause()


def menu_insights(ledger: Ledger):
    console.clear()
    header(ledger)
    console.print("[bold]Office intelligence[/bold]\n")
    try:
        with console.status("Analyzing trends…"):
            text = ledger.slot.run(ledger.insights.summarize, ledger.store.records)
    except InsightBusy as e:
        console.print(f"[yellow]{e}[/yellow]")
    else:
        console.print(Panel(escape(text), border_style="magenta"))
    pause()


def menu_report(ledger: Ledger, query: str = ""):
    view = build_view(ledger.store.records, query)
    out = export_report_pdf(view.records, ledger.identity)
    console.print(f"\n[green]Report written[/green] → [cyan]{out}[/cyan] ({len(view)} rows)")
    pause()


# ----------------------------
# Subcommands
# ----------------------------
@app.command()
def init(
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Initialize the workspace (DB + folders + session identity)."""
    ledger = open_ledger(db_path)
    root = workspace_root()

    env_file = env_file_path()
    if not env_file.exists():
        env_file.write_text("# GEMINI_API_KEY=\n# TEXTILE_LEDGER_MODEL=\n", encoding="utf-8")

    typer.echo("✅ Textile Ledger workspace initialized")
    typer.echo(f"📁 Location: {root}")
    typer.echo(f"🪪 Session: {ledger.identity}")
    typer.echo("")
    typer.echo("Created (if missing):")
    typer.echo("  - exports/")
    typer.echo("  - log/")
    typer.echo(f"  - secrets/{ENV_FILENAME}")


@app.command("list")
def list_entries(
    search: str = typer.Option("", "--search", "-s", help="Case-insensitive filter on details, id and date."),
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Show entries grouped by day, newest first."""
    ledger = open_ledger(db_path)
    render_view(build_view(ledger.store.records, search), ledger.identity, query=search)


@app.command()
def show(
    ref: str = typer.Argument(..., help="Entry id or batch ID prefix."),
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Show one entry."""
    ledger = open_ledger(db_path)
    try:
        render_record(ledger.store.find(ref), ledger.identity)
    except LedgerError as e:
        fail(e)


@app.command()
def add(
    dori: Optional[str] = typer.Option(None, "--dori", help="Dori detail."),
    warpin: Optional[str] = typer.Option(None, "--warpin", help="Warpin detail."),
    bheem: Optional[str] = typer.Option(None, "--bheem", help="Bheem detail."),
    delivery: Optional[str] = typer.Option(None, "--delivery", help="Delivery detail."),
    entry_date: Optional[str] = typer.Option(None, "--date", "-d", help="Entry date (default: today)."),
    note: Optional[str] = typer.Option(None, "--note", help="Free-text note to pre-fill the details with AI."),
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Log a new batch. Missing details are prompted for."""
    ledger = open_ledger(db_path)
    suggested = suggest_from_note(ledger, note) if note else {}

    given = {
        "dori_detail": dori,
        "warpin_detail": warpin,
        "bheem_detail": bheem,
        "delivery_detail": delivery,
    }
    values = {}
    for attr, value in given.items():
        if value is None and attr in suggested:
            value = suggested[attr]
        if value is None:
            value = Prompt.ask(_PROMPTS[attr], default="").strip()
        values[attr] = value

    try:
        fields = RecordFields(entry_date=entry_date or today_iso(), **values)
        r = ledger.store.create(fields)
    except LedgerError as e:
        fail(e)
    console.print(f"[green]Saved[/green] batch [cyan]{short_id(r)}[/cyan] ({r.id}) for {r.entry_date}.")


@app.command()
def edit(
    ref: str = typer.Argument(..., help="Entry id or batch ID prefix."),
    dori: Optional[str] = typer.Option(None, "--dori"),
    warpin: Optional[str] = typer.Option(None, "--warpin"),
    bheem: Optional[str] = typer.Option(None, "--bheem"),
    delivery: Optional[str] = typer.Option(None, "--delivery"),
    entry_date: Optional[str] = typer.Option(None, "--date", "-d"),
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Replace the details of one of your own entries. Unset options keep their value."""
    ledger = open_ledger(db_path)
    try:
        r = ledger.store.find(ref)
        ensure_can_modify(ledger, r, "edit")
        fields = RecordFields(
            dori_detail=r.dori_detail if dori is None else dori,
            warpin_detail=r.warpin_detail if warpin is None else warpin,
            bheem_detail=r.bheem_detail if bheem is None else bheem,
            delivery_detail=r.delivery_detail if delivery is None else delivery,
            entry_date=entry_date or r.entry_date,
        )
        updated = ledger.store.update(r.id, fields)
    except LedgerError as e:
        fail(e)
    console.print(f"[green]Updated[/green] batch [cyan]{short_id(updated)}[/cyan].")


@app.command()
def delete(
    ref: str = typer.Argument(..., help="Entry id or batch ID prefix."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Delete one of your own entries."""
    ledger = open_ledger(db_path)
    try:
        r = ledger.store.find(ref)
        ensure_can_modify(ledger, r, "delete")
        if not yes and not Confirm.ask(f"Delete batch {short_id(r)} ({r.entry_date})?", default=False):
            console.print("[yellow]Kept.[/yellow]")
            return
        ledger.store.delete(r.id)
    except LedgerError as e:
        fail(e)
    console.print("[green]Deleted.[/green]")


@app.command()
def insights(
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Ask the AI service for a short production-flow summary."""
    ledger = open_ledger(db_path)
    with console.status("Analyzing trends…"):
        text = ledger.slot.run(ledger.insights.summarize, ledger.store.records)
    console.print(Panel(escape(text), title="Office intelligence", border_style="magenta"))


@app.command()
def report(
    search: str = typer.Option("", "--search", "-s", help="Export only entries matching this filter."),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-O",
        help="Output PDF path. Default: <workspace>/exports/Textile_Ledger_<date>.pdf",
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Export the (filtered) ledger as a PDF table."""
    ledger = open_ledger(db_path)
    view = build_view(ledger.store.records, search)
    try:
        path = export_report_pdf(view.records, ledger.identity, Path(out).expanduser() if out else None)
    except LedgerError as e:
        fail(e)
    console.print(f"[green]Report written[/green] → [cyan]{path}[/cyan] ({len(view)} rows)")


@app.command()
def whoami(
    db_path: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Show the session identity and ledger counts."""
    ledger = open_ledger(db_path)
    stats = ledger.store.stats()
    t = Table(show_header=False, box=None)
    t.add_row("[dim]session[/dim]", ledger.identity)
    t.add_row("[dim]workspace[/dim]", str(workspace_root()))
    t.add_row("[dim]total entries[/dim]", str(stats.total_records))
    t.add_row("[dim]last 24h[/dim]", str(stats.recent_activity))
    t.add_row("[dim]mine[/dim]", str(stats.mine))
    console.print(t)
