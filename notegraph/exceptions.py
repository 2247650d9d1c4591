"""Exceptions raised by the note graph engine."""


class NoteGraphError(Exception):
    """Base class for note graph errors."""


class NodeNotFoundError(NoteGraphError, KeyError):
    """Raised when an explicit request references a node that is not in the graph."""

    def __init__(self, node_id: str):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Node {self.node_id} not found"


class InvalidLinkError(NoteGraphError, ValueError):
    """Raised when a link request cannot describe a valid edge, e.g. a self link."""


class EmbedderUnavailableError(NoteGraphError, RuntimeError):
    """Raised at startup when the configured embedding backend cannot be created."""
