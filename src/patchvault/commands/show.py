import typer

from patchvault.config import Settings
from patchvault.store import VersionStore


def show(settings: Settings, document_id: str, at: int | None) -> None:
    with VersionStore.open(settings) as store:
        _ = store.get_document(document_id)
        text = store.load_text(document_id, at)
    typer.echo(text, nl=False)
