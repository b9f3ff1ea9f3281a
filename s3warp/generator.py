"""Generation of pseudorandom benchmark objects."""

from __future__ import annotations

import io
import math
import posixpath
import random
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

_ASCII_LETTERS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ1234567890()"
_MASK32 = 0xFFFFFFFF
_NAME_RANDOM_LEN = 16
_MIN_RANDOM_SIZE = 256
_MAX_PREFIX_SIZE = 16


def _rand_ascii(length: int, rng: random.Random) -> str:
    """Return pseudorandom ASCII letters; not for true random data."""
    value = rng.getrandbits(64)
    rnd = value & _MASK32
    rnd2 = (value >> 32) & _MASK32
    letters = []
    for _ in range(length):
        letters.append(_ASCII_LETTERS[(rnd >> 16) % len(_ASCII_LETTERS)])
        rnd ^= rnd2
        rnd = (rnd * 2654435761) & _MASK32
    return "".join(letters)


def get_exp_rand_size(rng: random.Random, min_size: int, max_size: int) -> int:
    """Return an exponentially distributed random size up to and including max_size.

    The smallest scale is 128 bytes, or 256 times below the maximum.
    """
    if max_size - min_size < 10:
        if max_size - min_size <= 0:
            return 0
        return 1 + min_size + rng.randrange(max_size - min_size)
    log_max = math.log2(float(max_size - 1))
    log_min = max(7.0, log_max - 8)
    if min_size > 0:
        log_min = math.log2(float(min_size - 1))
    delta = log_max - log_min
    rnd = rng.random()
    log_size = rnd * delta
    if log_size > 1:
        return 1 + int(math.pow(2, log_size + log_min))
    # The lowest part is distributed evenly.
    return 1 + min_size + int(rnd * math.pow(2, log_min + 1))


@dataclass(slots=True)
class Object:
    """A generated object: its name, size and a reader of its content."""

    reader: Optional[RandomReader] = None
    name: str = ""
    content_type: str = ""
    prefix: str = ""
    version_id: str = ""
    size: int = 0


class Objects(list[Object]):
    """A list of objects."""

    def prefixes(self) -> list[str]:
        """Return the distinct prefixes, in order of first appearance."""
        return list(dict.fromkeys(obj.prefix for obj in self))


def merge_object_prefixes(object_lists: Iterable[Iterable[Object]]) -> list[str]:
    """Return the distinct prefixes of several lists of objects."""
    return list(dict.fromkeys(obj.prefix for objs in object_lists for obj in objs))


@dataclass(frozen=True, slots=True)
class RandomOpts:
    """Options of the random data source."""

    seed: Optional[int] = None
    size: int = 128 << 10

    def rng_seed(self, seed: int) -> RandomOpts:
        """Return options using a fixed seed, for predictable output."""
        return replace(self, seed=seed)

    def block_size(self, size: int) -> RandomOpts:
        """Return options with a block size; the block repeats to fill objects."""
        return replace(self, size=size)

    def apply(self) -> Option:
        """Return an option selecting random data with these settings."""

        def option(opts: Options) -> None:
            if self.size <= 0:
                raise ValueError("random: size <= 0")
            opts.random = self
            opts.source_factory = RandomSource

        return option


def with_random_data() -> RandomOpts:
    """Return the default random data options."""
    return RandomOpts()


@dataclass(slots=True)
class Options:
    """Settings for object generation, changed by the with_* options."""

    source_factory: Callable[[Options], RandomSource] = field(default=None)  # type: ignore[assignment]
    custom_prefix: str = ""
    random: RandomOpts = field(default_factory=RandomOpts)
    min_size: int = 0
    total_size: int = 1 << 20
    random_prefix: int = 0
    rand_size: bool = False

    def __post_init__(self) -> None:
        if self.source_factory is None:
            self.source_factory = RandomSource

    def _size(self, rng: random.Random) -> int:
        if not self.rand_size:
            return self.total_size
        return get_exp_rand_size(rng, self.min_size, self.total_size)


Option = Callable[[Options], None]


def with_min_max_size(min_size: int, max_size: int) -> Option:
    """Set the smallest and biggest size of generated objects."""

    def option(opts: Options) -> None:
        if min_size <= 0:
            raise ValueError("with_min_max_size: min_size must be > 0")
        if max_size < 0:
            raise ValueError("with_min_max_size: max_size must be >= 0")
        if min_size > max_size:
            raise ValueError("with_min_max_size: min_size must be <= max_size")
        if opts.rand_size and max_size < _MIN_RANDOM_SIZE:
            raise ValueError(
                "with_min_max_size: random sized objects should be at least 256 bytes"
            )
        opts.total_size = max_size
        opts.min_size = min_size

    return option


def with_size(n: int) -> Option:
    """Set the size of generated objects."""

    def option(opts: Options) -> None:
        if n <= 0:
            raise ValueError("with_size: size must be > 0")
        if opts.rand_size and opts.total_size < _MIN_RANDOM_SIZE:
            raise ValueError("with_size: random sized objects should be at least 256 bytes")
        opts.total_size = n

    return option


def with_random_size(enabled: bool) -> Option:
    """Randomize object sizes up to the configured size."""

    def option(opts: Options) -> None:
        if enabled and 0 < opts.total_size < _MIN_RANDOM_SIZE:
            raise ValueError(
                "with_random_size: random sized objects should be at least 256 bytes"
            )
        opts.rand_size = enabled

    return option


def with_custom_prefix(prefix: str) -> Option:
    """Place all generated objects under a custom prefix."""

    def option(opts: Options) -> None:
        opts.custom_prefix = prefix

    return option


def with_prefix_size(n: int) -> Option:
    """Set the length of the random prefix, 0 to 16."""

    def option(opts: Options) -> None:
        if n < 0 or n > _MAX_PREFIX_SIZE:
            raise ValueError("with_prefix_size: size must be >= 0 and <= 16")
        opts.random_prefix = n

    return option


class RandomReader:
    """A seekable reader of pseudorandom content of a fixed size.

    A random block is repeated to fill the content; every reset starts the
    content at a new random place in the block.
    """

    def __init__(self, rng: random.Random, block_size: int, size: int) -> None:
        if block_size <= 0:
            raise ValueError(f"block size must be > 0, got {block_size}")
        self._rng = rng
        self._block = rng.randbytes(block_size)
        self._shift = 0
        self._size = 0
        self._pos = 0
        self.reset_size(size)

    @property
    def size(self) -> int:
        """The number of bytes the reader returns in total."""
        return self._size

    def reset_size(self, size: int) -> None:
        """Start new content of the given size, at position 0."""
        if size < 0:
            raise ValueError(f"size must be >= 0, got {size}")
        self._size = size
        self._pos = 0
        self._shift = self._rng.randrange(len(self._block))

    def read(self, n: int = -1) -> bytes:
        """Read up to n bytes, or everything left when n is negative."""
        remaining = self._size - self._pos
        if n is None or n < 0 or n > remaining:
            n = remaining
        block = self._block
        start = (self._pos + self._shift) % len(block)
        out = bytearray()
        while len(out) < n:
            out += block[start : start + n - len(out)]
            start = 0
        self._pos += n
        return bytes(out)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move to a position and return it.

        Raises EOFError when the position lies beyond the end.
        """
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        elif whence == io.SEEK_END:
            target = self._size + offset
        else:
            raise ValueError(f"invalid whence: {whence}")
        if target < 0:
            raise ValueError(f"negative seek position: {target}")
        if target > self._size:
            raise EOFError("seek beyond end of data")
        self._pos = target
        return target

    def tell(self) -> int:
        """Return the current position."""
        return self._pos


class RandomSource:
    """A source of objects filled with pseudorandom data.

    Every object returned shares the source's reader, which is reset for
    each new object; only one object's content can be read at a time.
    """

    def __init__(self, options: Options) -> None:
        seed = options.random.seed
        if seed is None:
            seed = random.getrandbits(63)
        block = min(options.random.size, options.total_size)
        if block <= 0:
            raise ValueError(f"size must be > 0, got {block}")
        self._options = options
        self._rng = random.Random(seed)
        self._reader = RandomReader(random.Random(self._rng.getrandbits(64)), block, 0)
        self._counter = 0
        self._lock = threading.Lock()
        self._prefix = self._make_prefix(options)

    @staticmethod
    def _make_prefix(options: Options) -> str:
        if options.random_prefix <= 0:
            return options.custom_prefix
        rng = random.Random(random.getrandbits(63))
        letters = _rand_ascii(options.random_prefix, rng)
        return posixpath.normpath(posixpath.join(options.custom_prefix, letters))

    def object(self) -> Object:
        """Return a new object with a new name, size and content."""
        with self._lock:
            self._counter += 1
            counter = self._counter
            letters = _rand_ascii(_NAME_RANDOM_LEN, self._rng)
            size = self._options._size(self._rng)
            self._reader.reset_size(size)
        base = f"{counter}.{letters}.rnd"
        name = f"{self._prefix}/{base}" if self._prefix else base
        return Object(
            reader=self._reader,
            name=name,
            content_type="application/octet-stream",
            prefix=self._prefix,
            size=size,
        )

    def prefix(self) -> str:
        """Return the prefix of the objects, if any."""
        return self._prefix

    def __str__(self) -> str:
        if self._options.rand_size:
            return f"Random data; random size up to {self._options.total_size} bytes"
        return f"Random data; {self._options.total_size} bytes total"


def _build_options(args: Iterable[Option]) -> Options:
    options = Options()
    for option in args:
        option(options)
    return options


def new_source(*args: Option) -> RandomSource:
    """Return a data source configured by the given options."""
    options = _build_options(args)
    return options.source_factory(options)


def new_source_factory(*args: Option) -> Callable[[], RandomSource]:
    """Return a function that creates a new source on every call."""
    options = _build_options(args)

    def factory() -> RandomSource:
        return options.source_factory(replace(options))

    return factory