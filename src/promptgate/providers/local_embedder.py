"""SentenceTransformers embeddings for local, offline-capable deployments."""

import asyncio
from typing import Sequence

import numpy as np

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class SentenceTransformerEmbedder:
    """Runs a SentenceTransformer model in a worker thread."""

    def __init__(self, model_name: str = DEFAULT_MODEL):
        # Imported here so the package works without the optional extra
        from sentence_transformers import SentenceTransformer

        self.model_name = model_name
        self.model = SentenceTransformer(model_name)

    async def embed(self, texts: Sequence[str]) -> np.ndarray:
        if not texts:
            return np.empty((0, self.model.get_sentence_embedding_dimension()))
        vecs = await asyncio.to_thread(self.model.encode, list(texts))
        vecs = np.asarray(vecs, dtype=np.float32)
        return vecs / (np.linalg.norm(vecs, axis=1, keepdims=True) + 1e-12)

    def __repr__(self) -> str:
        return f"SentenceTransformerEmbedder(model='{self.model_name}')"
