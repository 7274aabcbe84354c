import sys
from pathlib import Path

import typer

from patchvault.config import Settings
from patchvault.console import is_input_terminal
from patchvault.exceptions import InvalidInputError, NoChangeError
from patchvault.store import VersionStore


def _read_content(file: Path | None) -> bytes:
    if file is not None:
        try:
            return file.read_bytes()
        except OSError as e:
            raise InvalidInputError(f"Could not read '{file}': {e.strerror or e}") from e

    if is_input_terminal():
        raise InvalidInputError("No content given. Pass a FILE or pipe the content on stdin.")
    return sys.stdin.buffer.read()


def commit(settings: Settings, document_id: str, file: Path | None, timestamp: int | None) -> None:
    content = _read_content(file)

    with VersionStore.open(settings) as store:
        try:
            patch_id = store.create_patch(document_id, content, timestamp)
        except NoChangeError as e:
            print("No changes: content is identical to the current version.", file=sys.stderr)
            raise typer.Exit(code=e.exit_code) from None

    print(patch_id)
