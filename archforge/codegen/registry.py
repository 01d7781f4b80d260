"""Engine registry populated at startup and read per request."""
from __future__ import annotations

import threading
from typing import Dict, List, Optional

from archforge.codegen.engine import Engine
from archforge.errors import DuplicateEngineError, EngineRegistrationError, UnknownEngineError


class EngineRegistry:
    def __init__(self) -> None:
        self._engines: Dict[str, Engine] = {}
        self._lock = threading.Lock()

    def register(self, engine: Optional[Engine]) -> None:
        if engine is None:
            raise EngineRegistrationError("cannot register a missing engine")
        name = getattr(engine, "name", "")
        if not isinstance(name, str) or not name.strip():
            raise EngineRegistrationError("engine name cannot be empty")
        with self._lock:
            if name in self._engines:
                raise DuplicateEngineError(name)
            self._engines[name] = engine

    def get(self, name: str) -> Optional[Engine]:
        # dict reads are atomic; writers swap entries under the lock
        return self._engines.get(name)

    def must_get(self, name: str) -> Engine:
        """Lookup for startup wiring; raises when ``name`` is not registered."""
        engine = self.get(name)
        if engine is None:
            raise UnknownEngineError(name, self.names())
        return engine

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._engines)

    def __contains__(self, name: object) -> bool:
        return name in self._engines

    def __len__(self) -> int:
        return len(self._engines)
