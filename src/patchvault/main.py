from collections.abc import Sequence
from pathlib import Path
from sys import exit
from typing import Annotated, Any, final, override

import typer
from typer.core import TyperGroup

from patchvault.exceptions import PatchVaultError

app: typer.Typer


@final
class PatchVaultGroup(TyperGroup):
    @override
    def main(  # pyright: ignore[reportAny]
        self,
        args: Sequence[str] | None = None,
        prog_name: str | None = None,
        complete_var: str | None = None,
        standalone_mode: bool = True,
        windows_expand_args: bool = True,
        **extra: Any,  # pyright: ignore[reportAny, reportExplicitAny]
    ) -> Any:  # pyright: ignore[reportExplicitAny]
        try:
            return super().main(args, prog_name, complete_var, standalone_mode, windows_expand_args, **extra)  #  pyright: ignore[reportAny]
        except PatchVaultError as e:
            typer.secho(f"Error: {e.message}", err=True, fg=typer.colors.RED)
            exit(e.exit_code)
        except Exception as e:
            typer.secho("Unexpected Internal Error", err=True, fg=typer.colors.RED)
            typer.echo(str(e), err=True)
            exit(1)


app = typer.Typer(cls=PatchVaultGroup, no_args_is_help=True)


@app.callback()
def main(
    ctx: typer.Context,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the SQLite database. Defaults to the configured location."),
    ] = None,
    window: Annotated[
        int | None,
        typer.Option(help="How many recent versions to consider as delta bases when committing."),
    ] = None,
    no_compress: Annotated[
        bool,
        typer.Option("--no-compress", help="Store delta bodies without zlib compression."),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug details to stderr.")] = False,
) -> None:
    """
    Delta-compressed version history for text documents.
    """
    from patchvault.config import load_settings
    from patchvault.logging_setup import configure_logging

    settings = load_settings(
        {
            "db_path": str(db) if db is not None else None,
            "window": window,
            "compress": False if no_compress else None,
            "log_level": "DEBUG" if verbose else None,
        }
    )
    configure_logging(settings.log_level)
    ctx.obj = settings


@app.command("new")
def new(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Display name of the new document.")],
) -> None:
    """
    Create a new, empty document and print its id.
    """
    from patchvault.commands import new

    new.new(ctx.obj, name)


@app.command("commit")
def commit(
    ctx: typer.Context,
    document_id: Annotated[str, typer.Argument(help="Id of the document to commit to.")],
    file: Annotated[
        Path | None,
        typer.Argument(help="File holding the new content. Reads stdin when omitted.", dir_okay=False),
    ] = None,
    timestamp: Annotated[
        int | None,
        typer.Option("--timestamp", "-t", help="Version timestamp in epoch milliseconds. Defaults to now."),
    ] = None,
) -> None:
    """
    Record new content as the next version of a document.
    """
    from patchvault.commands import commit

    commit.commit(ctx.obj, document_id, file, timestamp)


@app.command("show")
def show(
    ctx: typer.Context,
    document_id: Annotated[str, typer.Argument(help="Id of the document to show.")],
    at: Annotated[
        int | None,
        typer.Option("--at", help="Show the version as of this epoch-milliseconds timestamp. Defaults to now."),
    ] = None,
) -> None:
    """
    Print a document's content as of a point in time.
    """
    from patchvault.commands import show

    show.show(ctx.obj, document_id, at)


@app.command("list")
def list_documents(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output the documents as JSON.")] = False,
) -> None:
    """
    List all documents, newest first.
    """
    from patchvault.commands import document_list

    document_list.document_list(ctx.obj, json_output)


@app.command("log")
def log(
    ctx: typer.Context,
    document_id: Annotated[str, typer.Argument(help="Id of the document.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output the timestamps as JSON.")] = False,
) -> None:
    """
    Show the version timestamps of a document.
    """
    from patchvault.commands import log

    log.log(ctx.obj, document_id, json_output)


@app.command("stats")
def stats(
    ctx: typer.Context,
    document_id: Annotated[str, typer.Argument(help="Id of the document.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output the statistics as JSON.")] = False,
) -> None:
    """
    Show storage statistics and the compression ratio of a document.
    """
    from patchvault.commands import stats

    stats.stats(ctx.obj, document_id, json_output)


@app.command("clear-cache")
def clear_cache(ctx: typer.Context) -> None:
    """
    Drop the in-process version cache (a no-op across CLI invocations).

    Reconstructed versions are cached only for the lifetime of one process. Each CLI
    call opens a fresh store, so this reports 0 unless the store is embedded in a
    long-running process.
    """
    from patchvault.commands import clear_cache

    clear_cache.clear_cache(ctx.obj)


if __name__ == "__main__":
    app()
