"""Operation mix and pool of available objects for mixed benchmarks."""

from __future__ import annotations

import random
import threading
from typing import Callable, Mapping, Optional

from .generator import Object, Objects

_GENERATED_OPS = 1000
_SHUFFLE_SEED = 0xABAD1DEA
_DELETE = "DELETE"
_PUT = "PUT"


class MixedDistribution:
    """Keeps track of the operation mix and the objects currently available.

    ``distribution`` maps an operation name such as ``"GET"`` to its
    weight. Call :meth:`generate` before drawing operations.
    """

    def __init__(self, distribution: Optional[Mapping[str, float]] = None) -> None:
        self.distribution: dict[str, float] = dict(distribution or {})
        self._objects: dict[str, Object] = {}
        self._ops: list[str] = []
        self._current = 0
        self._pick = random.Random()
        self._lock = threading.Lock()

    def generate(self, alloc_objs: int) -> None:
        """Normalize the weights and build the shuffled operation sequence.

        Raises ValueError if the weights are unusable.
        """
        if self.distribution.get(_DELETE, 0.0) > self.distribution.get(_PUT, 0.0):
            raise ValueError("DELETE distribution cannot be bigger than PUT")
        self._objects = {}
        self._normalize()
        ops = [
            op
            for op, share in self.distribution.items()
            for _ in range(int(0.5 + share * _GENERATED_OPS))
        ]
        random.Random(_SHUFFLE_SEED).shuffle(ops)
        self._ops = ops
        self._current = 0

    def _normalize(self) -> None:
        for op, weight in self.distribution.items():
            if weight < 0:
                raise ValueError(f"negative distribution requested for op {op!r}")
        total = sum(self.distribution.values())
        if total == 0:
            raise ValueError("no distribution set, total is 0")
        self.distribution = {op: weight / total for op, weight in self.distribution.items()}

    def objects(self) -> Objects:
        """Return all objects currently available."""
        with self._lock:
            return Objects(self._objects.values())

    def _take(self) -> tuple[str, Object]:
        if not self._objects:
            raise LookupError("ran out of objects")
        key = self._pick.choice(list(self._objects))
        return key, self._objects.pop(key)

    def random_object(self) -> tuple[Object, Callable[[], None]]:
        """Borrow a random object.

        The object is unavailable to others until the returned function is
        called to give it back. Raises LookupError if none is available.
        """
        with self._lock:
            key, obj = self._take()

        def done() -> None:
            with self._lock:
                self._objects[key] = obj

        return obj, done

    def delete_random_object(self) -> Object:
        """Remove a random object for good and return it.

        Raises LookupError if none is available.
        """
        with self._lock:
            return self._take()[1]

    def add_object(self, obj: Object) -> int:
        """Make an object available and return how many are available."""
        with self._lock:
            self._objects[obj.name] = obj
            return len(self._objects)

    def next_op(self) -> str:
        """Return the next operation of the sequence, cycling at its end."""
        with self._lock:
            if not self._ops:
                raise RuntimeError("no operations generated")
            op = self._ops[self._current]
            self._current = (self._current + 1) % len(self._ops)
            return op