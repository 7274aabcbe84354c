from rich.console import Console
from rich.table import Table

from patchvault.config import Settings
from patchvault.console import format_bytes
from patchvault.serialization import to_json
from patchvault.store import VersionStore


def stats(settings: Settings, document_id: str, json_output: bool = False) -> None:
    with VersionStore.open(settings) as store:
        document = store.get_document(document_id)
        doc_stats = store.get_document_stats(document_id)

    if json_output:
        print(to_json(doc_stats).decode("utf-8"))
        return

    table = Table(title=f"Statistics for {document.name}", show_header=False, box=None, padding=(0, 1))
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Versions", str(doc_stats.patch_count))
    table.add_row("Stored deltas", format_bytes(doc_stats.total_delta_bytes))
    table.add_row("Uncompressed", format_bytes(doc_stats.total_uncompressed_bytes))
    table.add_row("Compression ratio", f"{doc_stats.compression_ratio:.2f}x")

    Console().print(table)
