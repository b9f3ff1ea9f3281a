"""Collections of operations and the queries run over them."""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from functools import cmp_to_key
from itertools import groupby
from typing import Callable

from .operation import ZERO_TIME, Operation, _nanos, _round_half_away

_LOG10_TO_SIZE = {
    0: "",
    1: "10B",
    2: "100B",
    3: "1KiB",
    4: "10KiB",
    5: "100KiB",
    6: "1MiB",
    7: "10MiB",
    8: "100MiB",
    9: "1GiB",
    10: "10GiB",
    11: "100GiB",
    12: "1TiB",
}

_LOG10_TO_BYTES = {
    0: 1,
    1: 10,
    2: 100,
    3: 1 << 10,
    4: 10 << 10,
    5: 100 << 10,
    6: 1 << 20,
    7: 10 << 20,
    8: 100 << 20,
    9: 1 << 30,
    10: 10 << 30,
    11: 100 << 30,
    12: 1 << 40,
}

_IEC_SUFFIXES = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]


def _ibytes(size: int) -> str:
    """Describe a byte count with a binary unit, one decimal below ten."""
    if size < 10:
        return f"{size} B"
    exponent = int(math.floor(math.log(size) / math.log(1024)))
    value = math.floor(size / 1024**exponent * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {_IEC_SUFFIXES[exponent]}"
    return f"{value:.0f} {_IEC_SUFFIXES[exponent]}"


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _ratio(size: int, nanos: int) -> float:
    if nanos == 0:
        return math.inf if size > 0 else (-math.inf if size < 0 else math.nan)
    return size / nanos


def _throughput_order(a: Operation, b: Operation) -> int:
    a_dur, b_dur = _nanos(a.duration()), _nanos(b.duration())
    if a.size == 0 or b.size == 0:
        return _cmp(a_dur, b_dur)
    a_speed, b_speed = _ratio(a.size, a_dur), _ratio(b.size, b_dur)
    if a_speed > b_speed:
        return -1
    if b_speed > a_speed:
        return 1
    return 0


def _ttfb_order(a: Operation, b: Operation) -> int:
    if a.first_byte is None or b.first_byte is None:
        return _cmp(a.start, b.start)
    return _cmp(a.ttfb(), b.ttfb())


@dataclass(slots=True)
class SizeSegment:
    """Operations whose sizes fall in one range."""

    ops: Operations = field(default_factory=lambda: Operations())
    smallest: int = 0
    smallest_log10: int = 0
    biggest: int = 0
    biggest_log10: int = 0

    def sizes_string(self) -> tuple[str, str]:
        """Return the lower and upper size limits as text."""
        if self.smallest_log10 <= 0 or self.biggest_log10 <= 0:
            return _ibytes(self.smallest), _ibytes(self.biggest)
        return (
            _LOG10_TO_SIZE.get(self.smallest_log10, ""),
            _LOG10_TO_SIZE.get(self.biggest_log10, ""),
        )

    def size_string(self) -> str:
        """Return the size range as text."""
        low, high = self.sizes_string()
        return f"{low} -> {high}"


class Operations(list[Operation]):
    """A list of operations."""

    # Sorting

    def sort_by_start_time(self) -> None:
        """Sort by start time, earliest first."""
        self.sort(key=lambda op: op.start)

    def sort_by_end_time(self) -> None:
        """Sort by end time, earliest first."""
        self.sort(key=lambda op: op.end)

    def sort_by_endpoint(self) -> None:
        """Sort by endpoint, then start time."""
        self.sort(key=lambda op: (op.endpoint, op.start))

    def sort_by_client(self) -> None:
        """Sort by client, then start time."""
        self.sort(key=lambda op: (op.client_id, op.start))

    def sort_by_op_type(self) -> None:
        """Sort by operation type, then start time."""
        self.sort(key=lambda op: (op.op_type, op.start))

    def sort_by_duration(self) -> None:
        """Sort by duration, fastest first."""
        self.sort(key=lambda op: op.duration())

    def sort_by_throughput(self) -> None:
        """Sort by throughput, fastest first."""
        self.sort(key=cmp_to_key(_throughput_order))

    def sort_by_throughput_non_zero(self) -> Operations:
        """Sort by throughput and return the operations with a positive duration."""
        self.sort_by_throughput()
        for index, op in enumerate(self):
            if op.duration() > timedelta(0):
                return Operations(self[index:])
        return Operations()

    def sort_by_ttfb(self) -> None:
        """Sort by time to first byte, smallest first."""
        self.sort(key=cmp_to_key(_ttfb_order))

    def median(self, m: float) -> Operation:
        """Return the operation at fraction m of the list, m clamped to 0..1."""
        if not self:
            return Operation()
        index = _round_half_away(len(self) * m)
        index = min(max(index, 0.0), float(len(self) - 1) + 1e-10)
        return self[int(index)]

    # Filtering

    def _where(self, predicate: Callable[[Operation], bool]) -> Operations:
        return Operations(op for op in self if predicate(op))

    def filter_by_has_ttfb(self, has_ttfb: bool) -> Operations:
        """Return the operations that do, or do not, have a time to first byte."""
        return self._where(lambda op: (op.first_byte is not None) == has_ttfb)

    def filter_inside_range(self, start: datetime, end: datetime) -> Operations:
        """Return the operations that lie completely within start..end."""
        return self._where(lambda op: not (op.start < start or op.end > end))

    def filter_by_op(self, op_type: str) -> Operations:
        """Return the operations of a type; an empty type matches all."""
        return self._where(lambda op: not op_type or op.op_type == op_type)

    def filter_by_endpoint(self, endpoint: str) -> Operations:
        """Return the operations run against one endpoint."""
        return self._where(lambda op: op.endpoint == endpoint)

    def filter_successful(self) -> Operations:
        """Return the operations without an error."""
        if not self:
            return Operations()
        failed = self.n_errors()
        if failed == 0:
            return self
        if failed == len(self):
            return Operations()
        return self._where(lambda op: not op.err)

    def filter_errors(self) -> Operations:
        """Return the operations with an error."""
        return self._where(lambda op: bool(op.err))

    def filter_first(self) -> Operations:
        """Return the first operation on each file, sorting by start time."""
        self.sort_by_start_time()
        return self._unique_files(self)

    def filter_last(self) -> Operations:
        """Return the last operation on each file, latest first."""
        self.sort_by_start_time()
        return self._unique_files(reversed(self))

    @staticmethod
    def _unique_files(ops) -> Operations:
        seen: set[str] = set()
        result = Operations()
        for op in ops:
            if op.file in seen:
                continue
            seen.add(op.file)
            result.append(op)
        return result

    def set_client_id(self, client_id: str) -> None:
        """Set the client id of every operation."""
        for op in self:
            op.client_id = client_id

    def clone(self) -> Operations:
        """Return a copy holding copies of every operation."""
        return Operations(replace(op) for op in self)

    # Splitting

    def _split_by(self, key: Callable[[Operation], str]) -> dict[str, Operations]:
        return {
            name: Operations(group)
            for name, group in groupby(self, key=key)
            if name
        }

    def sort_split_by_endpoint(self) -> dict[str, Operations]:
        """Sort by endpoint and split into one list per endpoint."""
        self.sort_by_endpoint()
        return self._split_by(lambda op: op.endpoint)

    def sort_split_by_client(self, prefix: str) -> dict[str, Operations]:
        """Sort by client and split into one list per client, keys prefixed."""
        self.sort_by_client()
        return {prefix + k: v for k, v in self._split_by(lambda op: op.client_id).items()}

    def sort_split_by_op_type(self) -> dict[str, Operations]:
        """Sort by operation type and split into one list per type."""
        self.sort_by_op_type()
        return self._split_by(lambda op: op.op_type)

    def by_endpoint(self) -> dict[str, Operations]:
        """Group the operations by endpoint, keeping their order."""
        groups: dict[str, Operations] = defaultdict(Operations)
        for op in self:
            groups[op.endpoint].append(op)
        return dict(groups)

    # Operation types

    def op_types(self) -> list[str]:
        """Return the operation types in order of appearance, sorted if overlapping."""
        types = list(dict.fromkeys(op.op_type for op in self))
        if self._is_mixed(types):
            types.sort()
        return types

    def is_mixed(self) -> bool:
        """Tell whether different operation types overlap in time."""
        return self._is_mixed(self.op_types())

    def _is_mixed(self, types: list[str]) -> bool:
        if len(types) <= 1:
            return False
        for a in types:
            a_start, a_end = self.filter_by_op(a).time_range()
            for b in types:
                if a == b:
                    continue
                b_start, b_end = self.filter_by_op(b).time_range()
                first_end, second_start = a_end, b_end
                if b_start < a_start:
                    first_end, second_start = b_end, a_start
                if first_end > second_start:
                    return True
        return False

    def is_multi_touch(self) -> bool:
        """Tell whether any file is touched more than once."""
        seen: set[str] = set()
        for op in self:
            if op.file in seen:
                return True
            seen.add(op.file)
        return False

    def first_op_type(self) -> str:
        """Return the type of the first operation, or an empty string."""
        return self[0].op_type if self else ""

    def first_obj_size(self) -> int:
        """Return the size of the first operation, or 0."""
        return self[0].size if self else 0

    def first_obj_per_op(self) -> int:
        """Return the objects per operation of the first operation, or 0."""
        return self[0].obj_per_op if self else 0

    # Errors

    def has_error(self) -> bool:
        """Tell whether any operation failed."""
        return any(op.err for op in self)

    def errors(self) -> list[str]:
        """Return the error messages recorded."""
        return [op.err for op in self if op.err]

    def n_errors(self) -> int:
        """Return the number of failed operations."""
        return sum(1 for op in self if op.err)

    # Sizes

    def multiple_sizes(self) -> bool:
        """Tell whether successful operations have different sizes."""
        if not self:
            return False
        first = self[0].size
        return any(not op.err and op.size != first for op in self)

    def min_max_size(self) -> tuple[int, int]:
        """Return the smallest and biggest operation size."""
        if not self:
            return 0, 0
        sizes = [op.size for op in self]
        return min(sizes), max(sizes)

    def avg_size(self) -> int:
        """Return the average size, truncated."""
        if not self:
            return 0
        total = sum(op.size for op in self)
        return int(total / len(self)) if total < 0 else total // len(self)

    def single_size_segment(self) -> SizeSegment:
        """Return all operations as one size segment."""
        min_size, max_size = self.min_max_size()
        min_l10 = 0
        while min_l10 + 1 in _LOG10_TO_BYTES and min_size > _LOG10_TO_BYTES[min_l10 + 1]:
            min_l10 += 1
        max_l10 = 0
        while max_l10 in _LOG10_TO_BYTES and max_size >= _LOG10_TO_BYTES[max_l10]:
            max_l10 += 1
        return SizeSegment(
            ops=self,
            smallest=min_size,
            smallest_log10=min_l10,
            biggest=max_size,
            biggest_log10=max_l10,
        )

    def split_sizes(self, min_share: float) -> list[SizeSegment]:
        """Split into size ranges by powers of ten.

        A range is returned once it holds at least min_share of all operations.
        """
        if not self.multiple_sizes():
            return [self.single_size_segment()]
        result: list[SizeSegment] = []
        min_size, max_size = self.min_max_size()
        if min_size == 0:
            min_size = 1
        current = int(math.log10(min_size))
        max_log = int(math.log10(max_size))
        want = int(len(self) * min_share)

        def fresh(log: int) -> SizeSegment:
            return SizeSegment(smallest=_LOG10_TO_BYTES.get(log, 0), smallest_log10=log)

        seg = fresh(current)
        while current <= max_log:
            current += 1
            seg.biggest = _LOG10_TO_BYTES.get(current, 0)
            seg.biggest_log10 = current
            seg.ops.extend(op for op in self if seg.smallest <= op.size < seg.biggest)
            if len(seg.ops) >= want:
                result.append(seg)
                seg = fresh(current)
        return result

    # Durations and time

    def avg_duration(self) -> timedelta:
        """Return the average duration."""
        if not self:
            return timedelta(0)
        total = sum((op.duration() for op in self), timedelta(0))
        if total < timedelta(0):
            return -((-total) // len(self))
        return total // len(self)

    def std_dev(self) -> timedelta:
        """Return the sample standard deviation of the durations."""
        if len(self) <= 1:
            return timedelta(0)
        avg = _nanos(self.avg_duration())
        total = sum(float(avg - _nanos(op.duration())) ** 2 for op in self)
        nanos = int(math.sqrt(total / (len(self) - 1)))
        return timedelta(microseconds=nanos // 1000)

    def duration(self) -> timedelta:
        """Return the time from the first start to the last end."""
        start, end = self.time_range()
        return end - start

    def time_range(self) -> tuple[datetime, datetime]:
        """Return the first start and the last end."""
        if not self:
            return ZERO_TIME, ZERO_TIME
        return min(op.start for op in self), max(op.end for op in self)

    def active_time_range(self, all_threads: bool) -> tuple[datetime, datetime]:
        """Return the range in which the benchmark was fully active.

        With all_threads, every thread must have finished one request and no
        thread may have started its last; otherwise only the first finished
        and the last started request are left out. Both values are equal if
        there is no such range.
        """
        if not self:
            return ZERO_TIME, ZERO_TIME
        if not all_threads:
            first_end = self[0].start
            last_start = self[0].end
            for op in self:
                if op.end < first_end:
                    first_end = op.end
                if last_start < op.start:
                    last_start = op.start
            start, end = last_start, first_end
            for op in self:
                if first_end < op.start < start:
                    start = op.start
                if end < op.end < last_start:
                    end = op.end
            if start > end:
                return start, start
            return start, end

        first_ended: dict[int, datetime] = {}
        last_started: dict[int, datetime] = {}
        start = end = ZERO_TIME
        for op in self:
            ended = first_ended.get(op.thread)
            if ended is None or ended > op.end:
                first_ended[op.thread] = op.end
            started = last_started.get(op.thread)
            if started is None or started < op.start:
                last_started[op.thread] = op.start
            if end < op.end:
                end = op.end
        for ended in first_ended.values():
            if ended > start:
                start = ended
        for started in last_started.values():
            if end > started:
                end = started
        if start > end:
            return start, start
        return start, end

    # Threads, hosts and clients

    def threads(self) -> int:
        """Return the number of threads, the highest thread id plus one."""
        if not self:
            return 0
        return max(op.thread for op in self) + 1

    def offset_threads(self, n: int) -> int:
        """Add n to every thread id and return the next free thread id."""
        if not self:
            return 0
        highest = 0
        for op in self:
            op.thread = (op.thread + n) & 0xFFFF
            highest = max(highest, op.thread)
        return (highest + 1) & 0xFFFF

    def hosts(self) -> int:
        """Return the number of distinct endpoints."""
        return len({op.endpoint for op in self})

    def clients(self) -> int:
        """Return the number of distinct clients."""
        return len({op.client_id for op in self})

    def endpoints(self) -> list[str]:
        """Return the distinct endpoints, sorted."""
        return sorted({op.endpoint for op in self})

    def client_ids(self, prefix: str) -> list[str]:
        """Return the distinct client ids with a prefix, sorted."""
        return sorted(prefix + cid for cid in {op.client_id for op in self})