"""Error types raised across the diagnosis workflow."""


class DiagnosisError(RuntimeError):
    """The diagnosis service failed, timed out, or returned malformed data.

    The message is meant to be shown to the user as-is.
    """


class ParseError(ValueError):
    """A stored image payload could not be parsed back into mime type and base64."""


class StorageError(RuntimeError):
    """Reading or writing the durable history slot failed."""
