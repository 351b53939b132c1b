from __future__ import annotations

import re
import threading

from cellsuite.env import Env
from cellsuite.errors import ExhaustionError


MAX_PORT = 65536


class PortAllocator:
    """
    Hands out consecutive, never-reused port ranges.

    A single counter guarded by a lock is the whole allocation state, so
    concurrent claims from threads or coroutines never overlap. Ports are
    not returned to the pool; a range belongs to its claimant until the
    test process exits.
    """

    __slots__ = (
        "_start",
        "_end",
        "_next_port",
        "_lock",
    )

    def __init__(self, start: int, end: int) -> None:
        if start < 1 or end > MAX_PORT or start >= end:
            raise ValueError(
                f"Err. - invalid port range [{start}, {end})"
            )

        self._start = start
        self._end = end
        self._next_port = start
        self._lock = threading.Lock()

    @classmethod
    def for_worker(
        cls,
        env: Env,
        worker_id: str | None = None,
    ) -> PortAllocator:
        span = env.CELLSUITE_PORTS_PER_WORKER
        start = env.CELLSUITE_PORT_RANGE_START + (_worker_index(worker_id) * span)

        return cls(start, min(start + span, MAX_PORT))

    @property
    def start(self):
        return self._start

    @property
    def end(self):
        return self._end

    @property
    def remaining(self):
        with self._lock:
            return self._end - self._next_port

    def claim_ports(self, count: int) -> int:
        if count < 1:
            raise ValueError(f"Err. - must claim at least one port, got {count}")

        with self._lock:
            if self._next_port + count > self._end:
                raise ExhaustionError(count, self._next_port, self._end)

            start_port = self._next_port
            self._next_port += count

        return start_port


def _worker_index(worker_id: str | None) -> int:
    if worker_id is None or worker_id == "master":
        return 0

    match = re.search(r"(\d+)$", worker_id)
    if match is None:
        raise ValueError(f"Err. - unrecognized test worker id {worker_id}")

    return int(match.group(1))
