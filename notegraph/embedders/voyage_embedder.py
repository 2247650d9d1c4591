import numpy as np
import voyageai

from notegraph.embedders.base import normalize


class VoyageEmbedder:
    def __init__(self, api_key: str, model: str = "voyage-3"):
        self.client = voyageai.Client(api_key=api_key)
        self.model = model

    def embed(self, text: str) -> np.ndarray:
        result = self.client.embed(texts=[text], model=self.model, input_type="document")
        return normalize(np.array(result.embeddings[0], dtype=np.float32))
