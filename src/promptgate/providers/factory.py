"""Pick the best available embedding provider."""

from typing import Optional

from ..core.abc import Embeddings, Logger
from ..core.logging import get_logger
from .mock_embedder import create_mock_embedder
from .openai_embedder import create_openai_embedder, is_openai_available


async def create_embedder_with_fallback(*, allow_mock: bool = True,
                                        logger: Optional[Logger] = None) -> Embeddings:
    """
    Create the best available embedder.

    Tries, in order: OpenAI (verified with a probe call), SentenceTransformers,
    then the deterministic mock embedder.

    Raises:
        RuntimeError: If nothing is available and allow_mock is False
    """
    log = logger or get_logger(__name__)

    if is_openai_available():
        embedder = create_openai_embedder(logger=log)
        if embedder is not None:
            try:
                probe = await embedder.embed(["test connection"])
                if probe.ndim == 2 and probe.shape[0] > 0 and probe.shape[1] > 0:
                    log.info("Using OpenAI embeddings", model=embedder.model)
                    return embedder
                log.warn("OpenAI probe returned empty embeddings")
            except Exception as e:
                log.warn("OpenAI probe failed, falling back to local embeddings", error=str(e))
    else:
        log.info("OpenAI not available (missing package or API key)")

    try:
        from .local_embedder import SentenceTransformerEmbedder
        embedder = SentenceTransformerEmbedder()
        log.info("Using SentenceTransformers embeddings", model=embedder.model_name)
        return embedder
    except ImportError as e:
        log.info("SentenceTransformers not installed", error=str(e))
    except Exception as e:
        log.warn("SentenceTransformers initialization failed", error=str(e))

    if not allow_mock:
        raise RuntimeError("No embedding provider available. Install 'promptgate[local]' "
                           "or set OPENAI_API_KEY.")

    log.warn("Falling back to mock embedder (limited accuracy, for testing only)")
    return create_mock_embedder()
