# src/hookrunner/services/scripts/habitats.py
from __future__ import annotations
import logging
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Iterator, Optional, Set

from hookrunner.domain import HabitatLease
from hookrunner.ports import EventBus
from hookrunner.services.eventbus import emit

_log = logging.getLogger("hookrunner.habitats")


class HabitatAllocator:
    """
    Leases small integer ids, each naming a directory ``{habitats_dir}/{id}``.

    ``rent()`` always hands out the lowest id that is not currently rented.
    Engine runtimes cache compiled scripts by absolute path, so a webhook that
    fires repeatedly tends to land in the same habitat and skip the cold start.
    Uniqueness while rented is the only correctness requirement.

    An id whose directory could not be removed is retired: it is never handed
    out again by this allocator, so one broken habitat cannot take every later
    run down with it.
    """

    def __init__(self, habitats_dir: Path | str, *, bus: Optional[EventBus] = None) -> None:
        self.habitats_dir = Path(habitats_dir).expanduser().resolve()
        self._bus = bus
        self._rented: Set[int] = set()
        self._retired: Set[int] = set()
        self._lock = Lock()

    def rent(self) -> HabitatLease:
        with self._lock:
            hid = 0
            while hid in self._rented or hid in self._retired:
                hid += 1
            self._rented.add(hid)
        lease = HabitatLease(id=hid, path=self.habitats_dir / str(hid))
        _log.debug("habitat.rented", extra={"extra": {"habitat_id": hid, "path": str(lease.path)}})
        if self._bus is not None:
            emit(self._bus, "habitat.rented", {"habitat_id": hid, "path": str(lease.path)}, "habitats")
        return lease

    def return_(self, habitat_id: int) -> None:
        with self._lock:
            if habitat_id not in self._rented:
                return
            self._rented.discard(habitat_id)
        _log.debug("habitat.returned", extra={"extra": {"habitat_id": habitat_id}})
        if self._bus is not None:
            emit(self._bus, "habitat.returned", {"habitat_id": habitat_id}, "habitats")

    def retire(self, habitat_id: int) -> None:
        """Keep ``habitat_id`` out of the pool for good. Returning it later is a no-op."""
        with self._lock:
            self._retired.add(habitat_id)
            self._rented.discard(habitat_id)
        _log.warning("habitat.retired", extra={"extra": {"habitat_id": habitat_id}})
        if self._bus is not None:
            emit(self._bus, "habitat.retired", {"habitat_id": habitat_id}, "habitats")

    def rented(self) -> list[int]:
        with self._lock:
            return sorted(self._rented)

    def retired(self) -> list[int]:
        with self._lock:
            return sorted(self._retired)

    @contextmanager
    def lease(self) -> Iterator[HabitatLease]:
        """Rent for the duration of the block; the id goes back on every exit path."""
        lease = self.rent()
        try:
            yield lease
        finally:
            self.return_(lease.id)
