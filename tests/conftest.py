# pyright: standard
import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from patchvault.consts import ENV_PREFIX
from patchvault.store import PatchStore, VersionStore


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Points config/data lookups at tmp_path and hides any PATCHVAULT_* settings of the host."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)


@pytest.fixture
def patch_store() -> Iterator[PatchStore]:
    with PatchStore() as store:
        yield store


@pytest.fixture
def version_store(patch_store: PatchStore) -> VersionStore:
    return VersionStore(patch_store)
