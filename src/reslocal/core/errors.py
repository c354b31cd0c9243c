class LocalizerError(Exception):
    """Base error for all user-facing reslocal exceptions."""


class ConfigurationError(LocalizerError):
    """Raised when configuration is invalid or incomplete."""


class StateStoreError(LocalizerError):
    """Raised when persisted resolution state cannot be opened or written."""


class TransportError(LocalizerError):
    """Raised when a transport cannot be established."""


class DocumentError(LocalizerError):
    """Raised when an HTML document cannot be read or written."""
