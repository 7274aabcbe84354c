from rich.console import Console
from rich.table import Table

from patchvault.config import Settings
from patchvault.console import format_timestamp
from patchvault.serialization import to_json
from patchvault.store import VersionStore


def log(settings: Settings, document_id: str, json_output: bool = False) -> None:
    with VersionStore.open(settings) as store:
        document = store.get_document(document_id)
        timestamps = store.list_patch_timestamps(document_id)

    if json_output:
        print(to_json(timestamps).decode("utf-8"))
        return

    if not timestamps:
        print(f"No versions recorded for '{document.name}'.")
        return

    table = Table(
        title=f"Versions of {document.name}", show_header=True, header_style="bold", box=None, padding=(0, 1)
    )
    table.add_column("#", justify="right")
    table.add_column("Timestamp (ms)", justify="right")
    table.add_column("Time")
    for i, ts in enumerate(timestamps):
        table.add_row(str(i), str(ts), format_timestamp(ts))

    Console().print(table)
