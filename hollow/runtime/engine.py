"""
Hollow Function Runtime

Orchestrates one invocation end to end:
compile -> cache check -> dispatch with retry -> decode -> validate -> cache store.

``invoke`` never raises. Every failure, including cancellation, comes back
as a Failed InvocationResult carrying the most specific ErrorKind.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Tuple

from hollow.cache.invocation_cache import InvocationCache, canonical_json, make_key
from hollow.decoding.response_decoder import decode
from hollow.errors import (
    HollowError,
    InvocationCancelled,
    ProviderUnavailable,
    RateLimited,
    TransportError,
    UnsupportedArgumentType,
    UnknownFunction,
)
from hollow.llm.base_client import InferenceProvider
from hollow.models.config import EngineSettings
from hollow.models.enums import ErrorKind
from hollow.models.function_spec import FunctionSpec
from hollow.models.invocation import (
    CompiledPrompt,
    InvocationOptions,
    InvocationRequest,
    InvocationResult,
    RawResponse,
)
from hollow.observability.invocation_metrics import InvocationMetrics
from hollow.prompt.compiler import compile_prompt
from hollow.runtime.registry import FunctionRegistry
from hollow.utils import structured_log
from hollow.utils.logging_config import invocation_context
from hollow.utils.retry_strategies import RetryController
from hollow.validation.schema_validator import validate

if TYPE_CHECKING:
    from hollow.runtime.hollow_function import HollowFunction

logger = logging.getLogger(__name__)

_Outcome = Tuple[InvocationResult, int]


@dataclass
class _InFlight:
    task: "asyncio.Task[_Outcome]"
    waiters: int = 0


@dataclass
class _AttemptTrace:
    last_raw: Optional[str] = None
    provider_calls: int = 0


class HollowRuntime:
    """Registry-backed invocation engine bound to one InferenceProvider."""

    def __init__(
        self,
        provider: InferenceProvider,
        settings: Optional[EngineSettings] = None,
        *,
        registry: Optional[FunctionRegistry] = None,
        cache: Optional[InvocationCache] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.settings = settings or EngineSettings()
        self.registry = registry if registry is not None else FunctionRegistry()
        if cache is None and self.settings.cache.enabled:
            cache = InvocationCache(
                max_entries=self.settings.cache.max_entries,
                default_ttl_s=self.settings.cache.default_ttl_ms / 1000.0,
                clock=clock,
            )
        self.cache = cache
        self.metrics = InvocationMetrics()
        self._sleep = sleep
        self._clock = clock
        self._inflight: Dict[str, _InFlight] = {}
        if self.settings.audit_log_dir:
            structured_log.configure_run_logging(self.settings.audit_log_dir)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, spec: FunctionSpec) -> FunctionSpec:
        """Add *spec* to the registry. Raises DuplicateName if the name is taken.

        A spec declared without its own retry policy takes ``settings.default_retry``.
        Returns the spec as registered.
        """
        spec = self._with_defaults(spec)
        self.registry.register(spec)
        return spec

    def register_many(self, specs: Iterable[FunctionSpec]) -> None:
        for spec in specs:
            self.register(spec)

    async def replace(self, spec: FunctionSpec) -> None:
        """Install a new version of a spec and drop answers cached for the old one."""
        self.registry.replace(self._with_defaults(spec))
        if self.cache is not None:
            await self.cache.invalidate(spec.name)

    def _with_defaults(self, spec: FunctionSpec) -> FunctionSpec:
        if "retry" in spec.model_fields_set:
            return spec
        return spec.model_copy(update={"retry": self.settings.default_retry})

    async def unregister(self, name: str) -> None:
        self.registry.unregister(name)
        if self.cache is not None:
            await self.cache.invalidate(name)

    def function(self, name: str) -> "HollowFunction":
        from hollow.runtime.hollow_function import HollowFunction

        self.registry.get(name)
        return HollowFunction(self, name)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    async def invoke(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]] = None,
        options: Optional[InvocationOptions] = None,
    ) -> InvocationResult:
        """Run the hollow function *name* with *arguments*; never raises."""
        options = options or InvocationOptions()
        started = self._clock()

        try:
            spec = self.registry.get(name)
        except UnknownFunction as exc:
            return self._finish(name, self._failure(exc), started)

        try:
            args = dict(arguments or {})
        except (TypeError, ValueError):
            return self._finish(
                name,
                InvocationResult.failed(
                    ErrorKind.UNSUPPORTED_ARGUMENT_TYPE, "arguments must be a mapping of name to value"
                ),
                started,
            )
        if options.timeout_ms is not None and options.timeout_ms <= 0:
            return self._finish(
                name,
                InvocationResult.failed(ErrorKind.TIMEOUT, "timeout_ms must be positive"),
                started,
            )

        try:
            key = make_key(name, args)
        except (TypeError, ValueError, RecursionError) as exc:
            return self._finish(name, self._failure(self._unkeyable(spec, args, exc)), started)
        use_cache = self.cache is not None and spec.cache_enabled and not options.no_cache

        if use_cache:
            entry = await self.cache.get(key, spec.fingerprint)
            if entry is not None:
                logger.debug("Cache hit for %s (%s)", name, key[:12])
                return self._finish(name, entry.result, started, key=key, cache_hit=True)

        request = InvocationRequest(spec=spec, arguments=args)
        timeout_ms = options.timeout_ms if options.timeout_ms is not None else spec.timeout_ms
        deadline = started + timeout_ms / 1000.0

        if not self.settings.coalesce_inflight:
            try:
                result, calls = await self._execute(request, key, deadline, use_cache)
            except asyncio.CancelledError:
                result, calls = self._failure(InvocationCancelled("Invocation cancelled")), 0
            return self._finish(name, result, started, key=key, provider_calls=calls)

        flight_key = f"{spec.fingerprint}:{key}"
        flight = self._inflight.get(flight_key)
        coalesced = flight is not None
        if flight is None:
            task = asyncio.ensure_future(self._execute(request, key, deadline, use_cache))
            flight = _InFlight(task=task)
            self._inflight[flight_key] = flight
            task.add_done_callback(lambda _t, k=flight_key, f=flight: self._release(k, f))
        else:
            logger.debug("Joining in-flight invocation of %s (%s)", name, key[:12])

        flight.waiters += 1
        try:
            result, calls = await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                flight.task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await flight.task
            result = self._failure(InvocationCancelled("Invocation cancelled by caller"))
            return self._finish(name, result, started, key=key, coalesced=coalesced)
        flight.waiters -= 1
        return self._finish(
            name,
            result,
            started,
            key=key,
            provider_calls=0 if coalesced else calls,
            coalesced=coalesced,
        )

    def _release(self, flight_key: str, flight: _InFlight) -> None:
        if self._inflight.get(flight_key) is flight:
            del self._inflight[flight_key]

    async def _execute(
        self,
        request: InvocationRequest,
        key: str,
        deadline: float,
        use_cache: bool,
    ) -> _Outcome:
        with invocation_context(request.spec.name):
            return await self._execute_attempts(request, key, deadline, use_cache)

    async def _execute_attempts(
        self,
        request: InvocationRequest,
        key: str,
        deadline: float,
        use_cache: bool,
    ) -> _Outcome:
        spec = request.spec
        try:
            prompt = compile_prompt(spec, request.arguments)
        except HollowError as exc:
            return self._failure(exc), 0

        trace = _AttemptTrace()
        controller = RetryController(spec.retry, sleep=self._sleep, clock=self._clock, label=spec.name)

        async def attempt(number: int) -> Any:
            request.attempt = number
            raw = await self._call_provider(spec, prompt, number, trace)
            try:
                value = validate(decode(raw.text), spec.output_schema)
            except HollowError as exc:
                if exc.raw_text is None:
                    exc.raw_text = raw.text
                structured_log.log_attempt(
                    spec.name, number, "failed", error_kind=exc.kind.value, raw_response=raw.text
                )
                raise
            structured_log.log_attempt(
                spec.name,
                number,
                "success",
                latency_ms=raw.latency_ms,
                tokens_in=raw.input_tokens,
                tokens_out=raw.output_tokens,
            )
            return value

        try:
            value = await controller.run(attempt, deadline=deadline)
        except asyncio.CancelledError:
            result = self._failure(
                InvocationCancelled("Invocation cancelled"),
                attempts=controller.attempts,
                last_raw=trace.last_raw,
            )
            return result, trace.provider_calls
        except HollowError as exc:
            return self._failure(exc, attempts=controller.attempts, last_raw=trace.last_raw), trace.provider_calls

        result = InvocationResult.succeeded(value, attempts=controller.attempts)
        if use_cache and self.cache is not None:
            await self.cache.put(
                key,
                result,
                spec.cache_ttl_ms / 1000.0,
                spec_name=spec.name,
                fingerprint=spec.fingerprint,
            )
        return result, trace.provider_calls

    async def _call_provider(
        self,
        spec: FunctionSpec,
        prompt: CompiledPrompt,
        number: int,
        trace: _AttemptTrace,
    ) -> RawResponse:
        logger.debug("Dispatching %s (attempt %d/%d)", spec.name, number, spec.retry.max_attempts)
        trace.provider_calls += 1
        try:
            raw = await self.provider.complete(prompt, timeout_s=spec.retry.per_attempt_timeout_s)
        except HollowError as exc:
            structured_log.log_attempt(spec.name, number, "failed", error_kind=exc.kind.value)
            raise
        except asyncio.TimeoutError as exc:
            raise TransportError(f"Provider timed out on attempt {number}") from exc
        except Exception as exc:
            raise TransportError(f"Provider call failed: {exc}") from exc
        if isinstance(raw, str):
            raw = RawResponse(text=raw)
        if not isinstance(raw, RawResponse):
            returned = type(raw).__name__
        elif raw.text is not None and not isinstance(raw.text, str):
            returned = f"RawResponse with {type(raw.text).__name__} text"
        else:
            returned = None
        if returned is not None:
            structured_log.log_attempt(spec.name, number, "failed", error_kind=ErrorKind.TRANSPORT_ERROR.value)
            raise TransportError(f"Provider returned {returned}, expected RawResponse with str text")
        trace.last_raw = raw.text
        return raw

    # ------------------------------------------------------------------
    # Result shaping
    # ------------------------------------------------------------------

    @staticmethod
    def _unkeyable(spec: FunctionSpec, args: Mapping[str, Any], exc: Exception) -> HollowError:
        """Classify arguments that cannot be canonicalised into a cache key."""
        try:
            compile_prompt(spec, args)
        except HollowError as classified:
            return classified
        for arg_name, value in args.items():
            try:
                canonical_json({"value": value})
            except (TypeError, ValueError, RecursionError):
                return UnsupportedArgumentType(str(arg_name), f"not canonically serializable ({exc})")
        return UnsupportedArgumentType("<arguments>", f"not canonically serializable ({exc})")

    @staticmethod
    def _failure(
        exc: HollowError,
        *,
        attempts: int = 0,
        last_raw: Optional[str] = None,
    ) -> InvocationResult:
        raw_text = exc.raw_text if exc.raw_text is not None else last_raw
        if isinstance(exc, (TransportError, RateLimited)):
            exc = ProviderUnavailable(
                f"Provider unavailable after {attempts} attempt(s); last error ({exc.kind.value}): {exc.message}"
            )
        return InvocationResult.failed(exc.kind, exc.message, raw_text=raw_text, attempts=attempts)

    def _finish(
        self,
        name: str,
        result: InvocationResult,
        started: float,
        *,
        key: Optional[str] = None,
        provider_calls: int = 0,
        cache_hit: bool = False,
        coalesced: bool = False,
    ) -> InvocationResult:
        latency_ms = int((self._clock() - started) * 1000)
        self.metrics.record(
            name,
            result,
            provider_calls=provider_calls,
            latency_ms=latency_ms,
            cache_hit=cache_hit,
            coalesced=coalesced,
        )
        if not result.ok and result.error is not None:
            logger.warning(
                "Hollow function %s failed (%s): %s",
                name,
                result.error.kind.value,
                result.error.message,
            )
        structured_log.log_invocation(
            name,
            result.status.value,
            key=key,
            error_kind=result.error.kind.value if result.error else None,
            error=result.error.message if result.error else None,
            attempts=result.attempts,
            latency_ms=latency_ms,
            cache_hit=cache_hit,
            coalesced=coalesced,
        )
        return result
