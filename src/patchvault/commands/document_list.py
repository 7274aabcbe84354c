from rich.console import Console
from rich.table import Table

from patchvault.config import Settings
from patchvault.console import format_timestamp
from patchvault.serialization import to_json
from patchvault.store import VersionStore


def document_list(settings: Settings, json_output: bool = False) -> None:
    with VersionStore.open(settings) as store:
        documents = store.list_documents()

    if json_output:
        print(to_json(documents).decode("utf-8"))
        return

    if not documents:
        print("No documents found.")
        return

    table = Table(title="Documents", show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Created")
    for doc in documents:
        table.add_row(doc.id, doc.name, format_timestamp(doc.created_at))

    Console().print(table)
