from __future__ import annotations


class JobifyError(Exception):
    """Base class for failures raised by the assistant's components."""


class ValidationError(JobifyError):
    """User input that does not satisfy a step's format."""


class TransportError(JobifyError):
    """An external API or store was unreachable or answered with a non-success status."""


class DataError(JobifyError):
    """A payload could not be interpreted (malformed JSON, unreadable document, bad date)."""
