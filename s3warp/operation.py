"""A single timed benchmark operation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from .category import Categories
from .csvfmt import csv_escape

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_NANOS_PER_SECOND = 1_000_000_000
_NANOS_PER_MILLI = 1_000_000
_MAX_INT64 = 2**63 - 1


def _nanos(delta: timedelta) -> int:
    return (delta.days * 86400 + delta.seconds) * _NANOS_PER_SECOND + delta.microseconds * 1000


def _round_half_away(x: float) -> float:
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _fraction(moment: datetime) -> str:
    if moment.microsecond == 0:
        return ""
    return "." + f"{moment.microsecond:06d}".rstrip("0")


def _clock(moment: datetime) -> str:
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"{{sep}}{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f"{_fraction(moment)}"
    )


def _offset_parts(moment: datetime) -> tuple[str, int, int]:
    offset = moment.utcoffset() or timedelta(0)
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(offset) // timedelta(minutes=1)
    return sign, minutes // 60, minutes % 60


def _format_time(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 with trimmed fractional seconds."""
    text = _clock(moment).format(sep="T")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    sign, hours, minutes = _offset_parts(moment)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def _display_time(moment: datetime) -> str:
    """Format a timestamp for human display, with offset and zone name."""
    text = _clock(moment).format(sep=" ")
    sign, hours, minutes = _offset_parts(moment)
    name = moment.tzname() or "UTC"
    return f"{text} {sign}{hours:02d}{minutes:02d} {name}"


class Throughput(float):
    """A throughput in bytes per second."""

    def __str__(self) -> str:
        value = float(self)
        if value == 0:
            return "0B/s"
        if value < 2 << 10:
            return f"{value:.1f}B/s"
        if value < 2 << 20:
            return f"{value / (1 << 10):.1f}KiB/s"
        if value < 10 << 30:
            return f"{value / (1 << 20):.1f}MiB/s"
        if value < 10 << 40:
            return f"{value / (1 << 30):.2f}GiB/s"
        return f"{value / (1 << 40):.2f}TiB/s"

    def rounded(self) -> float:
        """Return the value rounded to one decimal, halves away from zero."""
        return _round_half_away(float(self) * 10) / 10


@dataclass(slots=True)
class Operation:
    """One request made during a benchmark and how long it took."""

    start: datetime = ZERO_TIME
    end: datetime = ZERO_TIME
    first_byte: Optional[datetime] = None
    op_type: str = ""
    err: str = ""
    file: str = ""
    client_id: str = ""
    endpoint: str = ""
    obj_per_op: int = 0
    size: int = 0
    thread: int = 0
    categories: Categories = field(default_factory=lambda: Categories(0))

    def duration(self) -> timedelta:
        """Return the time from start to end."""
        return self.end - self.start

    def bytes_per_sec(self) -> Throughput:
        """Return the throughput of this operation alone."""
        if self.size == 0:
            return Throughput(0)
        nanos = _nanos(self.duration())
        if nanos <= 0:
            return Throughput(0)
        return Throughput(float(self.size * _NANOS_PER_SECOND) / float(nanos))

    def ttfb(self) -> timedelta:
        """Return the time to first byte, or zero if none was recorded."""
        if self.first_byte is None:
            return timedelta(0)
        return self.first_byte - self.start

    def aggregate(self, segment: Any) -> bool:
        """Add this operation to a segment if it belongs there.

        Returns True when the operation starts at or after the end of the
        segment, meaning no later operation can belong to it either.
        """
        if self.start >= segment.ends_before:
            return True
        if segment.op_type and self.op_type != segment.op_type:
            return False
        if self.end < segment.start:
            return False

        started_in = self.start >= segment.start
        ended_in = self.end < segment.ends_before
        req_ms = _nanos(self.end - self.start) / _NANOS_PER_MILLI

        if started_in and ended_in:
            if self.err:
                segment.errors += 1
                return False
            segment.total_bytes += self.size
            segment.full_ops += 1
            segment.ops_started += 1
            segment.ops_ended += 1
            segment.objs_per_op = self.obj_per_op
            segment.objects += float(self.obj_per_op)
            segment.req_avg += req_ms
            return False

        segment.partial_ops += 1
        if started_in:
            segment.ops_started += 1
            if self.err:
                return False
        if ended_in:
            segment.ops_ended += 1
            if self.err:
                segment.errors += 1
                return False
            segment.req_avg += req_ms

        op_dur = _nanos(self.end - self.start)
        part_start = self.start if started_in else segment.start
        part_end = self.end if ended_in else segment.ends_before
        part_dur = _nanos(part_end - part_start)

        if float(self.size) * float(part_dur) > _MAX_INT64:
            part_size = int(float(self.size) * float(part_dur) / float(op_dur))
        else:
            part_size = int(self.size * part_dur / op_dur) if op_dur < 0 else (self.size * part_dur) // op_dur

        if part_size < 0 or part_size > self.size:
            raise ValueError(f"invalid part size: {part_size} (op: {self!r} seg: {segment!r})")

        segment.objects += float(self.obj_per_op) * float(part_dur) / float(op_dur)
        segment.total_bytes += part_size
        return False

    def csv_line(self, index: int) -> str:
        """Return this operation as one tab separated output line."""
        first_byte = _format_time(self.first_byte) if self.first_byte is not None else ""
        fields = [
            str(index),
            str(self.thread),
            self.op_type,
            self.client_id,
            str(self.obj_per_op),
            str(self.size),
            csv_escape(self.endpoint),
            self.file,
            csv_escape(self.err),
            _format_time(self.start),
            first_byte,
            _format_time(self.end),
            str(_nanos(self.duration())),
            str(int(self.categories)),
        ]
        return "\t".join(fields) + "\n"

    def __str__(self) -> str:
        return (
            f"{self.op_type} {self.endpoint}/(bucket)/{self.file}, "
            f"{_display_time(self.start)}->{_display_time(self.end)}, "
            f"Size: {self.size}, Error: {self.err}"
        )