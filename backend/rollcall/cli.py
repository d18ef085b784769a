import json
import logging
from pathlib import Path
from typing import Optional

import typer

from app.core.config import get_settings
from rollcall.importer import parse_import
from rollcall.roster import RosterStateManager, ValidationError, validate_names
from rollcall.store import JsonFileStore, load_sound_enabled, save_sound_enabled

app = typer.Typer(help="Classroom roll-call picker.", no_args_is_help=True)

EXIT_EXHAUSTED = 1
EXIT_INVALID = 2


class _Context:
    def __init__(self, store: JsonFileStore) -> None:
        self.store = store

    def manager(self) -> RosterStateManager:
        return RosterStateManager.from_store(self.store, default_roster=get_settings().default_roster)


@app.callback()
def main_callback(
    ctx: typer.Context,
    store: Optional[Path] = typer.Option(None, "--store", help="JSON state file (defaults to ROLLCALL_STORE_PATH)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
):
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = _Context(JsonFileStore(store or settings.store_path))


def _print_status(manager: RosterStateManager, store: JsonFileStore) -> None:
    typer.echo(f"Total: {len(manager.roster)}  Remaining: {len(manager.remaining)}  Picked: {len(manager.picked)}")
    if manager.picked:
        typer.echo("Picked: " + ", ".join(manager.picked))
    if manager.remaining:
        typer.echo("Remaining: " + ", ".join(manager.remaining))
    typer.echo(f"Sound: {'on' if load_sound_enabled(store) else 'off'}")
    if manager.needs_reset:
        typer.echo("Everyone has been called. Run `rollcall reset` to start over.")


@app.command()
def status(ctx: typer.Context):
    """Show roster, pick order and remaining pool."""
    _print_status(ctx.obj.manager(), ctx.obj.store)


@app.command()
def pick(ctx: typer.Context):
    """Call one name at random from the remaining pool."""
    manager = ctx.obj.manager()
    name = manager.pick_one()
    if name is None:
        typer.echo("Everyone has been called. Run `rollcall reset` to start over.", err=True)
        raise typer.Exit(code=EXIT_EXHAUSTED)
    typer.echo(name)


@app.command()
def reset(ctx: typer.Context):
    """Put every name back into the pool."""
    manager = ctx.obj.manager()
    manager.reset()
    typer.echo(f"Reset: {len(manager.remaining)} names remaining.")


@app.command("import")
def import_names(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON array or comma/line separated text"),
    fmt: Optional[str] = typer.Option(None, "--format", help="Force 'json' or 'text' instead of guessing from the file name"),
):
    """Replace the roster from a file and restart the session."""
    manager = ctx.obj.manager()
    try:
        names = parse_import(path.read_bytes(), filename=path.name, fmt=fmt)
        manager.import_roster(names)
    except ValidationError as exc:
        typer.echo(f"Import failed: {exc}", err=True)
        raise typer.Exit(code=EXIT_INVALID)
    typer.echo(f"Imported {len(manager.roster)} names.")


@app.command()
def export(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout"),
):
    """Export roster, pick order and remaining pool as JSON."""
    snapshot = ctx.obj.manager().export_snapshot()
    text = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"Exported to {output}")


@app.command()
def restore(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="A file written by `rollcall export`"),
):
    """Restore a session from an exported JSON document."""
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(document, dict):
            raise ValidationError("Export document must be a JSON object")
        validate_names(document.get("roster"))
    except json.JSONDecodeError as exc:
        typer.echo(f"Restore failed: could not parse {path.name}: {exc.msg}", err=True)
        raise typer.Exit(code=EXIT_INVALID)
    except ValidationError as exc:
        typer.echo(f"Restore failed: {exc}", err=True)
        raise typer.Exit(code=EXIT_INVALID)
    manager = RosterStateManager(ctx.obj.store, default_roster=get_settings().default_roster)
    manager.initialize(document)
    _print_status(manager, ctx.obj.store)


@app.command()
def sound(
    ctx: typer.Context,
    setting: Optional[str] = typer.Argument(None, help="'on' or 'off'; omit to show the current setting"),
):
    """Show or change the sound-enabled flag."""
    store = ctx.obj.store
    if setting is not None:
        value = setting.lower()
        if value not in {"on", "off"}:
            typer.echo("Sound setting must be 'on' or 'off'.", err=True)
            raise typer.Exit(code=EXIT_INVALID)
        save_sound_enabled(store, value == "on")
    typer.echo(f"Sound: {'on' if load_sound_enabled(store) else 'off'}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("app.main:app", host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
