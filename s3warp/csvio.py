"""Reading and writing operations as tab separated values."""

from __future__ import annotations

import csv
import re
from datetime import datetime, timedelta, timezone
from typing import IO, Callable, Iterable, Iterator, Optional

from .category import Categories
from .operation import Operation, _display_time
from .operations import Operations

_HEADER = (
    "idx\tthread\top\tclient_id\tn_objects\tbytes\tendpoint\tfile\terror"
    "\tstart\tfirst_byte\tend\tduration_ns\tcat\n"
)
_LOG_EVERY = 100_000

_TIME_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})\Z"
)
_SIGNED_RE = re.compile(r"[+-]?[0-9]+\Z")
_UNSIGNED_RE = re.compile(r"[0-9]+\Z")


def write_operations_csv(ops: Iterable[Operation], stream: IO[str], comment: str = "") -> None:
    """Write operations as tab separated values.

    A comment, if given, is written at the end, each line prefixed with '# '.
    """
    stream.write(_HEADER)
    for index, op in enumerate(ops):
        stream.write(op.csv_line(index))
    if comment:
        for line in comment.split("\n"):
            stream.write(f"# {line}\n")


class _CommentSkipper:
    """Feeds lines to a csv reader, dropping comment lines between records."""

    def __init__(self, stream: Iterable[str]) -> None:
        self._lines = iter(stream)
        self.record_start = True

    def __iter__(self) -> _CommentSkipper:
        return self

    def __next__(self) -> str:
        while True:
            line = next(self._lines)
            if self.record_start and line.startswith("#"):
                continue
            self.record_start = False
            return line


def _parse_time(text: str) -> datetime:
    match = _TIME_RE.match(text)
    if match is None:
        raise ValueError(f"cannot parse {text!r} as a timestamp")
    year, month, day, hour, minute, second, frac, zone = match.groups()
    micros = int((frac or "")[:6].ljust(6, "0"))
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
        tz = timezone(sign * offset) if offset else timezone.utc
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=tz
    )


def _parse_int(text: str, name: str, signed: bool, bits: int) -> int:
    pattern = _SIGNED_RE if signed else _UNSIGNED_RE
    if not pattern.match(text):
        raise ValueError(f"invalid {name} value {text!r}")
    value = int(text)
    low, high = (-(1 << (bits - 1)), (1 << (bits - 1)) - 1) if signed else (0, (1 << bits) - 1)
    if not low <= value <= high:
        raise ValueError(f"{name} value {text!r} out of range")
    return value


def _round_second(moment: datetime) -> datetime:
    base = moment.replace(microsecond=0)
    if moment.microsecond >= 500_000:
        base += timedelta(seconds=1)
    return base


def _numbering() -> Callable[[str], str]:
    seen: dict[str, int] = {}

    def number(name: str) -> str:
        if name not in seen:
            seen[name] = len(seen) + 1
        return str(seen[name])

    return number


def _lettering() -> Callable[[str], str]:
    seen: dict[str, str] = {}

    def letter(name: str) -> str:
        if name not in seen:
            seen[name] = chr((ord("a") + len(seen)) & 0xFF)
        return seen[name]

    return letter


def stream_operations_csv(
    stream: Iterable[str],
    analyze_only: bool = False,
    offset: int = 0,
    limit: int = 0,
    log: Optional[Callable[[str], None]] = None,
) -> Iterator[Operation]:
    """Yield operations read from tab separated values.

    With analyze_only, client ids are replaced by single letters and file
    names by numbers. The first ``offset`` records are skipped and at most
    ``limit`` are returned when it is positive.
    """
    lines = _CommentSkipper(stream)
    reader = csv.reader(lines, delimiter="\t", quotechar='"', strict=True)

    def next_record() -> Optional[list[str]]:
        while True:
            lines.record_start = True
            values = next(reader, None)
            if values is None or values:
                return values

    header = next_record()
    if header is None:
        raise ValueError("no header found")
    field_idx = {name: index for index, name in enumerate(header)}

    def column(values: list[str], name: str) -> str:
        return values[field_idx.get(name, 0)]

    client_of: Callable[[str], str] = _lettering() if analyze_only else (lambda c: c)
    file_of: Callable[[str], str] = _numbering() if analyze_only else (lambda f: f)

    count = 0
    while True:
        values = next_record()
        if values is None:
            break
        if len(values) != len(header):
            raise ValueError(f"record on line {reader.line_num}: wrong number of fields")
        if offset > 0:
            offset -= 1
            continue
        start = _parse_time(column(values, "start"))
        first_byte_text = column(values, "first_byte")
        first_byte = _parse_time(first_byte_text) if first_byte_text else None
        end = _parse_time(column(values, "end"))
        size = _parse_int(column(values, "bytes"), "bytes", True, 64)
        thread = _parse_int(column(values, "thread"), "thread", False, 16)
        objects = _parse_int(column(values, "n_objects"), "n_objects", True, 64)
        categories = Categories(0)
        if "cat" in field_idx:
            categories = Categories(_parse_int(values[field_idx["cat"]], "cat", False, 64))
        endpoint = values[field_idx["endpoint"]] if "endpoint" in field_idx else ""
        client_id = values[field_idx["client_id"]] if "client_id" in field_idx else ""

        yield Operation(
            op_type=column(values, "op"),
            obj_per_op=objects,
            start=start,
            first_byte=first_byte,
            end=end,
            err=column(values, "error"),
            size=size,
            file=file_of(column(values, "file")),
            thread=thread,
            endpoint=endpoint,
            client_id=client_of(client_id),
            categories=categories,
        )
        count += 1
        if log is not None and count % _LOG_EVERY == 0:
            stamp = _display_time(_round_second(start).astimezone())
            log(f"{count} operations loaded. Timestamp: {stamp}")
        if limit > 0 and count >= limit:
            break
    if log is not None:
        log(f"{count} operations loaded... Done!")


def read_operations_csv(
    stream: Iterable[str],
    analyze_only: bool = False,
    offset: int = 0,
    limit: int = 0,
    log: Optional[Callable[[str], None]] = None,
) -> Operations:
    """Read all operations from tab separated values."""
    return Operations(stream_operations_csv(stream, analyze_only, offset, limit, log))