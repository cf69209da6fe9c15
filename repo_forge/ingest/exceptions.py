"""Exceptions raised by the ingest pipeline."""


class IngestError(Exception):
    """Base exception for ingest pipeline errors."""
    pass


class DraftStateError(IngestError):
    """Illegal draft state transition or mutation of a terminal draft."""

    def __init__(self, identifier, current, requested):
        self.identifier = identifier
        self.current = current
        self.requested = requested
        super().__init__(
            f"Draft {identifier or '<unassigned>'} cannot go from "
            f"{getattr(current, 'value', current)} to {getattr(requested, 'value', requested)}"
        )


class TransformError(IngestError):
    """Transform definition missing or invalid."""
    pass


class SourceError(IngestError):
    """A source entry could not be read or turned into an item."""
    pass
