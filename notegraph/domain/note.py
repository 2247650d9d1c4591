"""Note domain models."""

from hashlib import sha256
from typing import Annotated

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, BeforeValidator, PlainSerializer


class Note(BaseModel):
    """Represents a note as supplied by the external note store.

    Attributes:
        id: Stable note identifier
        title: Note title
        text: Plain-text content of the note
        created: Creation timestamp (seconds since epoch)
        modified: Last update timestamp (seconds since epoch)
        archived: Archived notes are excluded from the graph and from similarity ranking
        ephemeral: Quick-capture notes that get archived when left untouched
        parent_id: Id of the group/folder note containing this note, if any
    """

    id: str
    title: str
    text: str = ""
    created: float
    modified: float
    archived: bool = False
    ephemeral: bool = True
    parent_id: str | None = None

    @property
    def preview(self) -> str:
        return self.text[:100]

    @property
    def text_hash(self) -> str:
        return sha256(self.text.encode()).hexdigest()


def nd_array_before_validator(x: list[float]) -> NDArray[np.float32]:
    return np.array(x, dtype=np.float32)


def nd_array_serializer(x: NDArray[np.float32]) -> list[float]:
    return x.tolist()  # type: ignore


NumPyArray = Annotated[
    np.ndarray,
    BeforeValidator(nd_array_before_validator),
    PlainSerializer(nd_array_serializer, return_type=list),
]


class Embedding(BaseModel):
    """An embedding vector attached to a note, with the hash of the text it was computed from."""

    note_id: str
    text_hash: str
    vector: NumPyArray

    model_config = {"arbitrary_types_allowed": True}
