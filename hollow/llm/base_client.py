"""Abstract inference provider protocol consumed by the invocation engine."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hollow.models.invocation import CompiledPrompt, RawResponse


@runtime_checkable
class InferenceProvider(Protocol):
    """Structural protocol satisfied by any client that can complete a prompt.

    Implementors make exactly one remote call per ``complete`` and leave
    retrying to the engine. Failures must be reported with the engine's
    taxonomy: TransportError and RateLimited for transient conditions,
    ProviderRejected for anything retrying cannot fix (bad credentials,
    content policy). Cancellation of the awaiting task must abort the call.
    """

    async def complete(self, prompt: CompiledPrompt, *, timeout_s: float) -> RawResponse:
        """Return the provider's raw text for *prompt* within *timeout_s* seconds."""
        ...
