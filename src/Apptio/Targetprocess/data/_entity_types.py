# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Process-wide cache of the entity types the service supports.

The first caller to need the list triggers a single fetch; concurrent callers
wait on the same in-flight fetch instead of starting their own. If the fetch
fails, validation falls back to the static registry and the failure is
reported as a :class:`~Apptio.Targetprocess.core.errors.CacheUnavailableWarning`.
"""

from __future__ import annotations

import difflib
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

from ..core._error_codes import VALIDATION_ENTITY_TYPE
from ..core.errors import CacheUnavailableWarning, ValidationError
from ..models.entity_registry import all_entity_types

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


@dataclass(frozen=True)
class EntityTypeValidation:
    """
    Result of validating an entity type name.

    :param is_valid: Whether the name is usable.
    :param entity_type: The name that was validated.
    :param errors: Human-readable reasons when invalid.
    :param warnings: Soft failures, e.g. :class:`CacheUnavailableWarning` when the
        static registry was used.
    :param source: ``"service"`` when checked against the fetched list, ``"fallback"``
        when checked against the static registry.
    """

    is_valid: bool
    entity_type: str
    errors: Tuple[str, ...] = ()
    warnings: Tuple[Warning, ...] = field(default=(), compare=False)
    source: str = "service"

    def raise_for_invalid(self) -> str:
        """Return the entity type, or raise :class:`ValidationError` listing the errors."""
        if not self.is_valid:
            raise ValidationError(
                "; ".join(self.errors),
                subcode=VALIDATION_ENTITY_TYPE,
                details={"entity_type": self.entity_type, "source": self.source},
            )
        return self.entity_type


class EntityTypeCache:
    """
    Single-flight cache of supported entity type names.

    :param fetch_entity_types: Callable returning the type names known to the service.
        It runs at most once per initialization attempt, whatever the number of
        concurrent callers.
    :type fetch_entity_types: Callable[[], Iterable[str]]
    :param fallback_types: Allow-list used while the fetched list is unavailable.
        Defaults to the static entity registry.
    :type fallback_types: Iterable[str] or None
    :param max_age: Seconds before a fetched list is refreshed. ``None`` keeps it
        until :meth:`reset`.
    :type max_age: float or None
    :param clock: Wall-clock source, injectable for tests.
    """

    def __init__(
        self,
        fetch_entity_types: Callable[[], Iterable[str]],
        fallback_types: Optional[Iterable[str]] = None,
        max_age: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch = fetch_entity_types
        self._fallback: FrozenSet[str] = frozenset(
            fallback_types if fallback_types is not None else all_entity_types()
        )
        self._max_age = max_age
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CacheState.UNINITIALIZED
        self._types: FrozenSet[str] = frozenset()
        self._inflight: Optional["Future[bool]"] = None
        self._initialized_at: Optional[float] = None
        self._fetch_count = 0

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def initialized_at(self) -> Optional[float]:
        return self._initialized_at

    @property
    def fetch_count(self) -> int:
        """Number of fetches started since construction."""
        return self._fetch_count

    def ensure_initialized(self) -> bool:
        """
        Make sure the fetched type list is loaded.

        Exactly one caller runs the fetch; concurrent callers block until it
        finishes and share its outcome. Fetch failures are logged, never raised.

        :return: True if the fetched list is available, False if callers must fall back.
        :rtype: bool
        """
        with self._lock:
            if self._state is CacheState.READY and not self._is_stale_locked():
                return True
            future = self._inflight
            owner = future is None
            if owner:
                future = Future()
                self._inflight = future
                self._state = CacheState.INITIALIZING
                self._fetch_count += 1

        if not owner:
            return future.result()

        ok = False
        try:
            ok = self._load()
        finally:
            with self._lock:
                if not ok:
                    self._state = CacheState.UNINITIALIZED
                self._inflight = None
            future.set_result(ok)
        return ok

    def _load(self) -> bool:
        logger.info("Fetching entity types from the service")
        try:
            names = frozenset(str(n) for n in self._fetch() if n)
        except Exception as exc:
            logger.warning("Failed to fetch entity types, falling back to the static registry: %s", exc)
            return False
        if not names:
            logger.warning("Service returned no entity types, falling back to the static registry")
            return False
        with self._lock:
            self._types = names
            self._initialized_at = self._clock()
            self._state = CacheState.READY
        logger.info("Entity type cache initialized with %d types", len(names))
        return True

    def _is_stale_locked(self) -> bool:
        if self._max_age is None or self._initialized_at is None:
            return False
        return self._clock() - self._initialized_at >= self._max_age

    def known_types(self) -> List[str]:
        """Sorted names currently considered valid, fetched or fallback."""
        if self.ensure_initialized():
            return sorted(self._types)
        return sorted(self._fallback)

    def validate(self, entity_type: str) -> EntityTypeValidation:
        """
        Check ``entity_type`` against the fetched list, or the allow-list if the
        fetch failed.

        :param entity_type: Name to check, e.g. ``"UserStory"``. Matching is case-sensitive.
        :type entity_type: str
        :rtype: EntityTypeValidation
        """
        if not entity_type or not str(entity_type).strip():
            return EntityTypeValidation(False, entity_type or "", ("Entity type is required",))

        warnings: Tuple[Warning, ...] = ()
        if self.ensure_initialized():
            valid_types, source = self._types, "service"
        else:
            valid_types, source = self._fallback, "fallback"
            warning = CacheUnavailableWarning(
                f"Entity type list unavailable; '{entity_type}' was checked against the built-in registry"
            )
            logger.warning("%s", warning)
            warnings = (warning,)

        if entity_type in valid_types:
            return EntityTypeValidation(True, entity_type, warnings=warnings, source=source)

        message = f"Invalid entity type: '{entity_type}'."
        suggestion = difflib.get_close_matches(entity_type, list(valid_types), n=1)
        if suggestion:
            message += f" Did you mean '{suggestion[0]}'?"
        message += f" Valid entity types are: {', '.join(sorted(valid_types))}"
        return EntityTypeValidation(False, entity_type, (message,), warnings=warnings, source=source)

    def is_valid(self, entity_type: str) -> bool:
        return self.validate(entity_type).is_valid

    def reset(self) -> None:
        """Forget the fetched list; the next caller fetches again. No-op while a fetch is running."""
        with self._lock:
            if self._inflight is not None:
                return
            self._state = CacheState.UNINITIALIZED
            self._types = frozenset()
            self._initialized_at = None


__all__ = ["CacheState", "EntityTypeValidation", "EntityTypeCache"]
