"""Test configuration and fixtures."""

import asyncio
import tempfile
from pathlib import Path

import numpy as np
import pytest

from promptgate.core.types import ComplianceProfile, Plan
from promptgate.policy.loader import load_config_from_string
from promptgate.providers.mock_embedder import create_mock_embedder
from promptgate.providers.static import StaticProfileStore
from promptgate.runtime.audit import InMemoryAuditSink


@pytest.fixture
def mock_embedder():
    """Provide a mock embedder for testing."""
    return create_mock_embedder(dimension=64)  # Smaller dimension for faster tests


class FailingEmbedder:
    """Embedder whose every call raises."""

    def __init__(self, error: Exception = None):
        self.error = error or ConnectionError("embedding service unreachable")
        self.calls = 0

    async def embed(self, texts):
        self.calls += 1
        raise self.error


class SlowEmbedder:
    """Embedder that sleeps past any reasonable timeout."""

    def __init__(self, delay: float = 1.0, dimension: int = 8):
        self.delay = delay
        self.dimension = dimension

    async def embed(self, texts):
        await asyncio.sleep(self.delay)
        return np.ones((len(texts), self.dimension))


@pytest.fixture
def failing_embedder():
    return FailingEmbedder()


@pytest.fixture
def slow_embedder():
    return SlowEmbedder()


class FailingAuditSink:
    """Audit sink that always raises."""

    def __init__(self):
        self.calls = 0

    async def record(self, entry):
        self.calls += 1
        raise IOError("audit store down")


class SlowAuditSink:
    def __init__(self, delay: float = 1.0):
        self.delay = delay

    async def record(self, entry):
        await asyncio.sleep(self.delay)


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


class FailingProfileStore:
    async def get_profile(self, org_id):
        raise ConnectionError("profile database unavailable")


class SlowProfileStore:
    async def get_profile(self, org_id):
        await asyncio.sleep(1.0)
        return ComplianceProfile(plan=Plan.ENTERPRISE)


@pytest.fixture
def profile_store():
    """Profiles for a GDPR org on pro and a HIPAA org on enterprise."""
    return StaticProfileStore({
        "org-eu": ComplianceProfile(plan=Plan.PRO, compliance_tags=("GDPR",)),
        "org-health": ComplianceProfile(plan=Plan.ENTERPRISE, compliance_tags=("HIPAA",)),
        "org-apac": ComplianceProfile(plan=Plan.TEAM, data_residency="APAC"),
    })


class RaisingFlags:
    """Feature flag source whose lookups always raise."""

    def is_enabled(self, flag, user_id=None, workspace_id=None):
        raise RuntimeError("flag service down")


class BadPlanProfileStore:
    """Returns a profile whose plan is not a known Plan value."""

    async def get_profile(self, org_id):
        return ComplianceProfile(plan="platinum", compliance_tags=("GDPR",))


class RecordingMeter:
    """Meter that keeps every counter increment and observation."""

    def __init__(self):
        self.counters = []
        self.observations = []

    def inc(self, name: str, amount: int = 1, **tags):
        self.counters.append((name, amount, tags))

    def observe(self, name: str, value: float, **tags):
        self.observations.append((name, value, tags))

    def names(self):
        return [c[0] for c in self.counters]


@pytest.fixture
def meter():
    return RecordingMeter()


@pytest.fixture
def sample_config_yaml():
    """Provide a sample config YAML for testing."""
    return """
version: 1
abuse:
  ml_threshold: 0.7
  block_threshold: 0.8
  semantic_threshold: 0.75
similarity:
  threshold: 0.85
  method: cosine
length:
  max_length: 100000
  max_tokens: 128000
routing:
  default_provider: openai
  default_model: gpt-4
  default_plan: free
corpus:
  reference_texts:
    - "spam message"
    - "phishing attempt"
    - "hate speech"
timeouts:
  embedding: 0.5
  profile: 0.5
  audit: 0.5
"""


@pytest.fixture
def sample_config(sample_config_yaml):
    """Provide a loaded config object for testing."""
    return load_config_from_string(sample_config_yaml)


@pytest.fixture
def temp_config_file(sample_config_yaml):
    """Provide a temporary config file for testing."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        f.write(sample_config_yaml)
        temp_path = Path(f.name)

    yield temp_path

    if temp_path.exists():
        temp_path.unlink()


class SimpleTestLogger:
    """Simple logger for testing that captures messages."""

    def __init__(self):
        self.messages = []

    def info(self, msg: str, **kv):
        self.messages.append(('info', msg, kv))

    def warn(self, msg: str, **kv):
        self.messages.append(('warn', msg, kv))

    def error(self, msg: str, **kv):
        self.messages.append(('error', msg, kv))

    def levels(self):
        return [m[0] for m in self.messages]

    def clear(self):
        """Clear captured messages."""
        self.messages.clear()


@pytest.fixture
def test_logger():
    """Provide a test logger that captures messages."""
    return SimpleTestLogger()
