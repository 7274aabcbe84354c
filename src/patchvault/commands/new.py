from patchvault.config import Settings
from patchvault.store import VersionStore


def new(settings: Settings, name: str) -> None:
    with VersionStore.open(settings) as store:
        document_id = store.create_document(name)
    print(document_id)
