"""
Pytest configuration and fixtures.
"""

import pytest

from hollow.models import EngineSettings, FunctionSpec, OutputSchema, RetryPolicy
from hollow.models.config import CacheSettings
from hollow.runtime import HollowRuntime
from hollow.utils import structured_log
from tests.fixtures.scripted_provider import RecordingSleep, ScriptedProvider


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Retry policy with zero backoff for deterministic tests."""
    return RetryPolicy(
        max_attempts=3,
        base_delay_ms=0,
        max_delay_ms=0,
        per_attempt_timeout_ms=1000,
        jitter=False,
    )


@pytest.fixture
def word_in_sentence_spec(fast_retry) -> FunctionSpec:
    return FunctionSpec(
        name="word_in_sentence",
        prompt_template="Is '{word}' in '{sentence}'? Answer as JSON.",
        output_schema={"wordInSentence": "boolean"},
        retry=fast_retry,
    )


@pytest.fixture
def word_in_sentence_bool_spec(fast_retry) -> FunctionSpec:
    """Same prompt, declared as a bare boolean so the one-field record unwraps."""
    return FunctionSpec(
        name="word_in_sentence_bool",
        prompt_template="Is '{word}' in '{sentence}'? Answer as JSON.",
        output_schema=OutputSchema.from_dict("boolean"),
        retry=fast_retry,
    )


@pytest.fixture
def sentiment_spec(fast_retry) -> FunctionSpec:
    return FunctionSpec(
        name="classify_sentiment",
        prompt_template="Classify the sentiment of this review: {review}",
        output_schema={
            "kind": "record",
            "fields": {
                "sentiment": {"kind": "enum", "values": ["positive", "negative", "neutral"]},
                "confidence": "number",
            },
        },
        retry=fast_retry,
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_runtime(word_in_sentence_spec, word_in_sentence_bool_spec, sentiment_spec, recording_sleep):
    """Build a runtime over a ScriptedProvider with the sample specs registered."""

    def _factory(provider: ScriptedProvider, **settings_overrides) -> HollowRuntime:
        cache_enabled = settings_overrides.pop("cache_enabled", True)
        settings = EngineSettings(cache=CacheSettings(enabled=cache_enabled), **settings_overrides)
        runtime = HollowRuntime(provider, settings, sleep=recording_sleep)
        runtime.register_many([word_in_sentence_spec, word_in_sentence_bool_spec, sentiment_spec])
        return runtime

    return _factory


@pytest.fixture(autouse=True)
def _reset_audit_log():
    yield
    structured_log.reset_run_logging()
