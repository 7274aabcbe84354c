class PatchVaultError(Exception):
    """Base exception for all expected patchvault errors."""

    message: str
    exit_code: int

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ConfigurationError(PatchVaultError):
    """Configuration related errors (env vars, config files)."""


class InvalidInputError(PatchVaultError):
    """User input validation errors."""


class TimestampConflictError(InvalidInputError):
    """A patch timestamp does not come after the document's latest patch."""


class NotFoundError(PatchVaultError):
    """A referenced document or patch does not exist."""


class NoChangeError(PatchVaultError):
    """New content is identical to the current version; nothing was written."""

    def __init__(self, message: str = "Content identical to last version - patch not created"):
        super().__init__(message, exit_code=3)


class DecodeError(PatchVaultError):
    """A stored delta is malformed or does not apply to its base."""


class EncodingError(PatchVaultError):
    """Reconstructed bytes are not valid text."""


class StoreError(PatchVaultError):
    """Persistence I/O failure."""
