"""Named backends plus the current backend/model selection."""

from __future__ import annotations

import logging
from typing import Optional

from llm_conductor.backends import Backend
from llm_conductor.errors import ConfigurationError

__all__ = ["BackendRegistry"]


class BackendRegistry:
    def __init__(
        self,
        backends: Optional[dict[str, Backend]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._backends: dict[str, Backend] = {}
        self._current: Optional[str] = None
        self._model: Optional[str] = None
        self.logger = logger or logging.getLogger(__name__)
        for name, backend in (backends or {}).items():
            self.add_backend(name, backend)

    def add_backend(self, name: str, backend: Backend) -> None:
        if not name:
            raise ConfigurationError("backend name cannot be empty")
        self._backends[name] = backend
        self.logger.debug("Registered backend %s", name)

    def set_current(self, name: str, model: str) -> None:
        """Select the backend and model used for subsequent turns."""
        if name not in self._backends:
            raise ConfigurationError(f"Unknown backend: {name}")
        if not model:
            raise ConfigurationError("model cannot be empty")
        self._current = name
        self._model = model
        self.logger.info("Current backend set to %s (model %s)", name, model)

    @property
    def is_configured(self) -> bool:
        return self._current is not None and self._model is not None

    @property
    def current(self) -> tuple[str, Backend, str]:
        name, model = self._current, self._model
        if name is None or model is None:
            raise ConfigurationError("missing current-model selection")
        return name, self._backends[name], model

    def get(self, name: str) -> Optional[Backend]:
        return self._backends.get(name)

    def names(self) -> list[str]:
        return list(self._backends)

    def __contains__(self, name: object) -> bool:
        return name in self._backends

    def __len__(self) -> int:
        return len(self._backends)

    async def aclose(self) -> None:
        for backend in self._backends.values():
            await backend.aclose()
