# s3warp

Building blocks for working with the results of S3 object-storage benchmarks:

- `s3warp.operation`: `Operation`, one timed request with its type, start and
  end, optional first-byte time, size, objects per operation, thread,
  endpoint, client id, error and categories; and `Throughput`, a bytes per
  second value that prints with a binary unit (`"12.3MiB/s"`).
- `s3warp.operations`: `Operations`, a list of operations with sorting,
  filtering, splitting by endpoint, client or operation type, median picks,
  average and standard deviation of durations, time ranges (including the
  range in which all threads were active), thread, host and client counts,
  and splitting by object size (`SizeSegment`).
- `s3warp.csvio`: write operations as tab-separated values and read them
  back, eagerly or as a generator.
- `s3warp.csvfmt`: quoting of single tab-separated fields.
- `s3warp.category`: `Category` and the `Categories` bit field.
- `s3warp.generator`: seekable pseudorandom object payloads with fixed,
  exponentially random or min/max sizes, custom and random prefixes, and
  optional fixed seeds.
- `s3warp.distribution`: `MixedDistribution`, a weighted, repeatable sequence
  of operation names over a pool of available objects.

## Installation

```
pip install .
```

The package has no runtime dependencies. To run the tests:

```
pip install ".[test]"
pytest
```

## Reading a recorded run

```python
from s3warp.csvio import read_operations_csv

with open("benchmark.csv", newline="") as fh:
    ops = read_operations_csv(fh, False, 0, 0, print)

for op_type, typed in ops.sort_split_by_op_type().items():
    start, end = typed.active_time_range(True)
    typed.sort_by_duration()
    print(op_type)
    print("  requests:", len(typed), "errors:", typed.n_errors())
    print("  active:  ", start, "->", end)
    print("  average: ", typed.avg_duration())
    print("  median:  ", typed.median(0.5).duration())
    print("  stddev:  ", typed.std_dev())
```

`read_operations_csv(stream, analyze_only, offset, limit, log)` skips lines
starting with `#`, skips the first `offset` records, stops after `limit`
records when `limit` is positive, and calls `log` with a progress message
every 100,000 records and once at the end. With `analyze_only`, client ids
are replaced by single letters and file names by numbers. Malformed records
raise `ValueError`. `stream_operations_csv` takes the same arguments and
yields operations one at a time.

## Writing operations

```python
from s3warp.csvio import write_operations_csv

with open("out.csv", "w", newline="") as fh:
    write_operations_csv(ops, fh, "run 1\nconcurrency 20")
```

The comment is written after the records, each line prefixed with `# `.
Endpoints and errors are quoted where needed with `s3warp.csvfmt.csv_escape`.

## Generating object data

```python
from s3warp.generator import new_source, with_size, with_prefix_size, with_random_data

source = new_source(
    with_size(1 << 20),
    with_prefix_size(8),
    with_random_data().rng_seed(42).apply(),
)
obj = source.object()
payload = obj.reader.read(-1)
assert len(payload) == obj.size
obj.reader.seek(0)
```

Every object from a source shares one `RandomReader`, reset for each new
object, so only one object's content can be read at a time. Seeking past the
end raises `EOFError`. Invalid options raise `ValueError`.
`new_source_factory(...)` returns a function that builds a fresh source on
each call.

## Mixed operation sequences

```python
from s3warp.distribution import MixedDistribution

dist = MixedDistribution({"GET": 45, "PUT": 15, "DELETE": 10, "STAT": 30})
dist.generate(1000)
for obj in source_objects:
    dist.add_object(obj)

op = dist.next_op()
obj, give_back = dist.random_object()
# ... use obj ...
give_back()
```

`generate` raises `ValueError` when a weight is negative, when all weights
are zero, or when DELETE outweighs PUT. Taking an object from an empty pool
raises `LookupError`.

## What this package does not do

It holds records, file formats and data generation only. It does not talk to
any S3 server or run benchmarks, has no command-line tool, and does not split
runs into time segments, compute throughput totals or time-to-first-byte
statistics over a run, compare two runs, or collect operations from worker
threads.