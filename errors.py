"""Error kinds raised by the link components.

Codec, keystore and store only report these; the link manager is the one place
that decides whether a failure is recoverable.
"""


class LinkError(Exception):
    """Base class for every link manager failure."""


class EntropyUnavailable(LinkError):
    """The OS random source could not produce bytes."""


class MalformedUrl(LinkError, ValueError):
    """A URL does not match the canonical room link format."""


class StoreError(LinkError):
    """The persisted link could not be read or written."""


class CorruptStore(StoreError):
    """The stored file exists but its format is unreadable."""


class CorruptKey(CorruptStore):
    """The key file exists but does not hold a usable key."""


class DecryptionFailed(StoreError):
    """The stored ciphertext failed authentication (tampered, corrupt or wrong key)."""


class ValidationError(LinkError):
    """User supplied link fields were rejected.

    ``message`` is meant to be shown to the end user as-is.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message
