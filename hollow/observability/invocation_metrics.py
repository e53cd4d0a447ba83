"""
Invocation Metrics

In-process counters for hollow function calls: outcomes, attempts, cache
behaviour, and failures by kind.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict

from ..models.enums import ErrorKind
from ..models.invocation import InvocationResult
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class FunctionMetrics:
    """Aggregated counters for one function name"""
    invocations: int = 0
    successes: int = 0
    failures: int = 0
    provider_calls: int = 0
    retries: int = 0
    cache_hits: int = 0
    coalesced: int = 0
    total_latency_ms: int = 0
    failures_by_kind: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    @property
    def avg_latency_ms(self) -> float:
        return self.total_latency_ms / self.invocations if self.invocations else 0.0


class InvocationMetrics:
    """Tracks and aggregates invocation outcomes per function"""

    def __init__(self):
        self._by_function: Dict[str, FunctionMetrics] = defaultdict(FunctionMetrics)

    def record(
        self,
        function: str,
        result: InvocationResult,
        *,
        provider_calls: int = 0,
        latency_ms: int = 0,
        cache_hit: bool = False,
        coalesced: bool = False,
    ) -> None:
        m = self._by_function[function]
        m.invocations += 1
        m.total_latency_ms += latency_ms
        m.provider_calls += provider_calls
        m.retries += max(0, provider_calls - 1)
        if cache_hit:
            m.cache_hits += 1
        if coalesced:
            m.coalesced += 1
        if result.ok:
            m.successes += 1
        else:
            m.failures += 1
            kind = result.error_kind or ErrorKind.TRANSPORT_ERROR
            m.failures_by_kind[kind.value] += 1

    def for_function(self, function: str) -> FunctionMetrics:
        return self._by_function[function]

    def summary(self) -> Dict[str, Any]:
        """Plain-dict snapshot of all counters, suitable for JSON export"""
        return {
            name: {
                "invocations": m.invocations,
                "successes": m.successes,
                "failures": m.failures,
                "provider_calls": m.provider_calls,
                "retries": m.retries,
                "cache_hits": m.cache_hits,
                "coalesced": m.coalesced,
                "avg_latency_ms": round(m.avg_latency_ms, 1),
                "failures_by_kind": dict(m.failures_by_kind),
            }
            for name, m in self._by_function.items()
        }

    def log_summary(self) -> None:
        for name, stats in self.summary().items():
            logger.info(
                f"{name}: {stats['successes']}/{stats['invocations']} ok, "
                f"{stats['provider_calls']} provider calls, {stats['cache_hits']} cache hits"
            )

    def reset(self) -> None:
        self._by_function.clear()
