"""
Function Registry

Holds the FunctionSpec declarations a runtime can invoke, keyed by name.
Specs are immutable; replacing one is the only way to change a function.
"""

import logging
from threading import Lock
from typing import Dict, Iterable, Iterator, List, Optional

from hollow.errors import DuplicateName, UnknownFunction
from hollow.models.function_spec import FunctionSpec

logger = logging.getLogger(__name__)


class FunctionRegistry:
    """Name -> FunctionSpec mapping with mutual exclusion around writes."""

    def __init__(self, specs: Optional[Iterable[FunctionSpec]] = None):
        self._specs: Dict[str, FunctionSpec] = {}
        self._lock = Lock()
        for spec in specs or ():
            self.register(spec)

    def register(self, spec: FunctionSpec) -> None:
        """Add *spec*; raises DuplicateName if the name is taken."""
        with self._lock:
            if spec.name in self._specs:
                raise DuplicateName(spec.name)
            self._specs[spec.name] = spec
        logger.debug("Registered hollow function %s (%s)", spec.name, spec.fingerprint[:12])

    def replace(self, spec: FunctionSpec) -> Optional[FunctionSpec]:
        """Swap in a new version of *spec*, returning the previous one if any."""
        with self._lock:
            previous = self._specs.get(spec.name)
            self._specs[spec.name] = spec
        return previous

    def unregister(self, name: str) -> FunctionSpec:
        with self._lock:
            if name not in self._specs:
                raise UnknownFunction(name)
            return self._specs.pop(name)

    def get(self, name: str) -> FunctionSpec:
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownFunction(name)
        return spec

    def names(self) -> List[str]:
        return sorted(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[FunctionSpec]:
        return iter(list(self._specs.values()))

    def __len__(self) -> int:
        return len(self._specs)
