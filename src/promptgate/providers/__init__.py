"""
PromptGate Providers Package

Embedding providers and in-process collaborators (profile store, feature
flags) that the host can inject into PromptGate.
"""

from .factory import create_embedder_with_fallback
from .mock_embedder import MockEmbedder, create_mock_embedder
from .openai_embedder import OpenAIEmbedder, create_openai_embedder, is_openai_available
from .static import StaticFeatureFlags, StaticProfileStore

__all__ = [
    'MockEmbedder', 'create_mock_embedder',
    'OpenAIEmbedder', 'create_openai_embedder', 'is_openai_available',
    'create_embedder_with_fallback',
    'StaticProfileStore', 'StaticFeatureFlags',
]
