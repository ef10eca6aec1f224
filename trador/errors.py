"""Exceptions raised by Trador."""


class TradorError(Exception):
    """Base class for all Trador errors."""


class InvalidAssetError(TradorError):
    """Raised when an asset identifier is malformed."""


class ConfigError(TradorError):
    """Raised when the configuration cannot be used."""


class StoreLockedError(TradorError):
    """Raised when another process holds the data store's run lock."""

    def __init__(self, pid: int):
        self.pid = pid
        super().__init__(
            f"Trador is running (pid {pid}). Stop it before changing the ledger."
        )
