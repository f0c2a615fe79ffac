"""Error types raised inside the core.

Public operations never let these escape; they are caught at the component
boundary and turned into ``None``/``False``/empty results.
"""


class LibVaultError(Exception):
    pass


class DecryptionError(LibVaultError):
    """Wrong password, malformed token or failed tag check (indistinguishable)."""


class ValidationError(LibVaultError, ValueError):
    pass
