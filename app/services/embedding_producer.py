"""
Text-to-vector producer used on the ingestion side.

Wraps a sentence-transformers model; the model is loaded on first use so
importing this module stays cheap.
"""

import logging
from typing import List, Optional, Sequence

from sentence_transformers import SentenceTransformer

from app.core.config import settings
from app.core.exceptions import UpstreamError
from app.services.embedding_store import to_vector

logger = logging.getLogger(__name__)


class SentenceTransformerProducer:
    def __init__(self, model_name: str = settings.EMBEDDING_MODEL, model: Optional[SentenceTransformer] = None):
        self.model_id = model_name
        self._model = model

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            logger.info("[Embeddings] Loading %s", self.model_id)
            self._model = SentenceTransformer(self.model_id)
        return self._model

    def encode(self, texts: Sequence[str]) -> List[List[float]]:
        try:
            vectors = self.model.encode(list(texts), normalize_embeddings=True)
        except (OSError, RuntimeError) as e:
            raise UpstreamError(f"Embedding model {self.model_id} failed: {e}") from e
        return [to_vector(v).tolist() for v in vectors]
