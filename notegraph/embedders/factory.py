"""Construction of the process-wide embedder.

The embedder is created once at startup and injected into the vector store. A missing
API key fails fast here instead of surfacing on the first note edit.
"""

from notegraph.config import Settings
from notegraph.embedders.base import Embedder
from notegraph.exceptions import EmbedderUnavailableError


def create_embedder(settings: Settings) -> Embedder:
    if settings.embedder == "voyage":
        if not settings.voyage_ai_api_key:
            raise EmbedderUnavailableError("NOTEGRAPH_VOYAGE_AI_API_KEY is not set")
        from notegraph.embedders.voyage_embedder import VoyageEmbedder

        return VoyageEmbedder(api_key=settings.voyage_ai_api_key)

    if settings.embedder == "openai":
        if not settings.openai_api_key:
            raise EmbedderUnavailableError("NOTEGRAPH_OPENAI_API_KEY is not set")
        from notegraph.embedders.openai_embedder import OpenAIEmbedder

        return OpenAIEmbedder(api_key=settings.openai_api_key)

    raise EmbedderUnavailableError(f"Unknown embedder: {settings.embedder}")
