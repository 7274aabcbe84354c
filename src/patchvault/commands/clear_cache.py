from patchvault.config import Settings
from patchvault.store import VersionStore


def clear_cache(settings: Settings) -> None:
    with VersionStore.open(settings) as store:
        dropped = store.clear_cache()

    plural_s = "" if dropped == 1 else "s"
    print(f"Cleared {dropped} cached version{plural_s}.")
