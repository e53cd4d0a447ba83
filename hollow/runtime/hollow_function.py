"""Callable handle that makes a registered spec look like an ordinary async function."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from hollow.errors import HollowFunctionError
from hollow.models.enums import ErrorKind
from hollow.models.function_spec import FunctionSpec
from hollow.models.invocation import InvocationOptions, InvocationResult

if TYPE_CHECKING:
    from hollow.runtime.engine import HollowRuntime


class HollowFunction:
    """``await fn(word="orange", sentence="...")`` -> InvocationResult.

    Use ``await fn.value(...)`` to get the typed value directly; a Failed
    result raises HollowFunctionError instead.
    """

    def __init__(self, runtime: "HollowRuntime", name: str):
        self._runtime = runtime
        self.name = name

    @property
    def spec(self) -> FunctionSpec:
        return self._runtime.registry.get(self.name)

    async def __call__(self, _options: Optional[InvocationOptions] = None, **arguments: Any) -> InvocationResult:
        return await self._runtime.invoke(self.name, arguments, _options)

    async def value(self, _options: Optional[InvocationOptions] = None, **arguments: Any) -> Any:
        result = await self(_options, **arguments)
        if not result.ok:
            error = result.error
            kind = error.kind if error else ErrorKind.TRANSPORT_ERROR
            raise HollowFunctionError(self.name, kind, error.message if error else "unknown failure")
        return result.value

    def __repr__(self) -> str:
        return f"HollowFunction({self.name!r})"
