from datetime import datetime, timedelta, timezone

from s3warp.operation import ZERO_TIME, Operation
from s3warp.operations import Operations, SizeSegment

BASE = datetime(2024, 1, 2, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds):
    return BASE + timedelta(seconds=seconds)


def op(start, end, **kw):
    return Operation(start=at(start), end=at(end), **kw)


def test_time_range_and_duration():
    ops = Operations([op(1, 3), op(0, 2), op(2, 5)])
    assert ops.time_range() == (at(0), at(5))
    assert ops.duration() == at(5) - at(0)


def test_time_range_empty():
    assert Operations().time_range() == (ZERO_TIME, ZERO_TIME)


def test_sorting_by_times():
    ops = Operations([op(3, 4), op(1, 9), op(2, 3)])
    ops.sort_by_start_time()
    assert [o.start for o in ops] == sorted(o.start for o in ops)
    ops.sort_by_end_time()
    assert [o.end for o in ops] == sorted(o.end for o in ops)
    ops.sort_by_duration()
    assert [o.duration() for o in ops] == sorted(o.duration() for o in ops)


def test_sort_by_endpoint_and_client():
    ops = Operations([op(2, 3, endpoint="b", client_id="x"), op(1, 2, endpoint="a", client_id="y"),
                      op(0, 1, endpoint="b", client_id="x")])
    ops.sort_by_endpoint()
    keys = [(o.endpoint, o.start) for o in ops]
    assert keys == sorted(keys)
    ops.sort_by_client()
    keys = [(o.client_id, o.start) for o in ops]
    assert keys == sorted(keys)


def test_median():
    ops = Operations([op(0, d) for d in (1, 2, 3, 4)])
    ops.sort_by_duration()
    assert ops.median(0) is ops[0]
    assert ops.median(1) is ops[-1]
    assert ops.median(-5) is ops[0]
    assert ops.median(5) is ops[-1]
    assert Operations().median(0.5) == Operation()


def test_filter_by_op():
    ops = Operations([op(0, 1, op_type="GET"), op(1, 2, op_type="PUT")])
    assert [o.op_type for o in ops.filter_by_op("PUT")] == ["PUT"]
    assert len(ops.filter_by_op("")) == len(ops)


def test_sort_split_by_op_type():
    ops = Operations([op(i, i + 1, op_type=t) for i, t in enumerate(["PUT", "GET", "PUT", "GET", "PUT"])])
    split = ops.sort_split_by_op_type()
    assert set(split) == {"GET", "PUT"}
    assert sum(len(v) for v in split.values()) == len(ops)
    for name, group in split.items():
        assert all(o.op_type == name for o in group)


def test_sort_split_skips_empty_key():
    ops = Operations([op(0, 1, endpoint=""), op(1, 2, endpoint="e1")])
    split = ops.sort_split_by_endpoint()
    assert list(split) == ["e1"]


def test_sort_split_by_client_prefix():
    ops = Operations([op(0, 1, client_id="a"), op(1, 2, client_id="b"), op(2, 3, client_id="a")])
    split = ops.sort_split_by_client("p-")
    assert set(split) == {"p-a", "p-b"}
    assert len(split["p-a"]) == 2


def test_op_types_not_mixed_keeps_order():
    ops = Operations([op(0, 1, op_type="PUT"), op(2, 3, op_type="GET")])
    assert ops.op_types() == ["PUT", "GET"]
    assert not ops.is_mixed()


def test_op_types_mixed_sorted():
    ops = Operations([op(0, 10, op_type="PUT"), op(5, 15, op_type="GET")])
    assert ops.is_mixed()
    assert ops.op_types() == ["GET", "PUT"]


def test_threads_and_offset():
    ops = Operations([op(0, 1, thread=0), op(0, 1, thread=2)])
    assert ops.threads() == 3
    assert ops.offset_threads(5) == 8
    assert [o.thread for o in ops] == [5, 7]
    assert Operations().offset_threads(3) == 0


def test_active_time_range_all_threads():
    ops = Operations([
        op(0, 1, thread=0), op(5, 7, thread=0),
        op(0, 2, thread=1), op(6, 8, thread=1),
    ])
    assert ops.active_time_range(True) == (at(2), at(5))


def test_active_time_range_degenerate():
    ops = Operations([op(0, 5, thread=0), op(1, 2, thread=1)])
    start, end = ops.active_time_range(True)
    assert start == end


def test_active_time_range_single_discard():
    ops = Operations([op(0, 1), op(1, 2), op(2, 3), op(3, 4)])
    start, end = ops.active_time_range(False)
    assert start <= end
    low, high = ops.time_range()
    assert low <= start and end <= high


def test_sizes():
    ops = Operations([op(0, 1, size=10), op(0, 1, size=30)])
    assert ops.min_max_size() == (10, 30)
    assert ops.avg_size() == 20
    assert ops.multiple_sizes()
    assert Operations().min_max_size() == (0, 0)


def test_multiple_sizes_ignores_errors():
    ops = Operations([op(0, 1, size=10), op(0, 1, size=99, err="boom")])
    assert not ops.multiple_sizes()


def test_avg_duration_and_std_dev():
    same = Operations([op(i, i + 2) for i in range(4)])
    assert same.avg_duration() == timedelta(seconds=2)
    assert same.std_dev() == timedelta(0)
    assert Operations([op(0, 3)]).std_dev() == timedelta(0)
    varied = Operations([op(0, 1), op(0, 5)])
    assert varied.std_dev() > timedelta(0)


def test_errors():
    ops = Operations([op(0, 1), op(1, 2, err="bad"), op(2, 3, err="worse")])
    assert ops.errors() == ["bad", "worse"]
    assert ops.n_errors() == 2
    assert ops.has_error()
    assert [o.err for o in ops.filter_errors()] == ["bad", "worse"]
    assert [o.err for o in ops.filter_successful()] == [""]
    assert not Operations().has_error()


def test_filter_successful_returns_self_without_errors():
    ops = Operations([op(0, 1)])
    assert ops.filter_successful() is ops
    assert Operations([op(0, 1, err="x")]).filter_successful() == Operations()


def test_filter_first_and_last():
    ops = Operations([op(2, 3, file="a"), op(0, 1, file="a"), op(1, 2, file="b")])
    first = ops.filter_first()
    assert [(o.file, o.start) for o in first] == [("a", at(0)), ("b", at(1))]
    last = ops.filter_last()
    assert [(o.file, o.start) for o in last] == [("a", at(2)), ("b", at(1))]


def test_single_size_segment_named_limits():
    ops = Operations([op(0, 1, size=1 << 20)])
    segment = ops.single_size_segment()
    assert segment.ops is ops
    assert segment.sizes_string() == ("100KiB", "10MiB")
    assert segment.size_string() == "100KiB -> 10MiB"


def test_size_segment_human_sizes():
    segment = SizeSegment(smallest=5, biggest=2048)
    assert segment.sizes_string() == ("5 B", "2.0 KiB")


def test_split_sizes_single_size():
    ops = Operations([op(0, 1, size=100), op(1, 2, size=100)])
    result = ops.split_sizes(0.1)
    assert len(result) == 1
    assert result[0].ops is ops


def test_split_sizes_ranges_hold_their_sizes():
    ops = Operations([op(0, 1, size=s) for s in (50, 500, 5000, 50000)])
    result = ops.split_sizes(0.0)
    assert result
    for segment in result:
        assert all(segment.smallest <= o.size < segment.biggest for o in segment.ops)
    found = {o.size for segment in result for o in segment.ops}
    assert found == {o.size for o in ops}


def test_endpoints_hosts_clients():
    ops = Operations([op(0, 1, endpoint="b", client_id="y"), op(0, 1, endpoint="a", client_id="x"),
                      op(0, 1, endpoint="b", client_id="x")])
    assert ops.endpoints() == ["a", "b"]
    assert ops.hosts() == 2
    assert ops.clients() == 2
    assert ops.client_ids("c-") == ["c-x", "c-y"]
    assert Operations().endpoints() == []


def test_by_endpoint():
    ops = Operations([op(0, 1, endpoint="a"), op(1, 2, endpoint="b"), op(2, 3, endpoint="a")])
    groups = ops.by_endpoint()
    assert [o.start for o in groups["a"]] == [at(0), at(2)]
    assert len(groups["b"]) == 1


def test_sort_by_throughput_fastest_first():
    ops = Operations([op(0, 4, size=100), op(0, 1, size=100), op(0, 2, size=100)])
    ops.sort_by_throughput()
    speeds = [float(o.bytes_per_sec()) for o in ops]
    assert speeds == sorted(speeds, reverse=True)


def test_sort_by_throughput_non_zero():
    ops = Operations([op(0, 0, size=0), op(0, 2, size=10), op(0, 1, size=0)])
    result = ops.sort_by_throughput_non_zero()
    assert result
    assert all(o.duration() > timedelta(0) for o in result)


def test_sort_by_ttfb_and_filters():
    ops = Operations([
        Operation(start=at(0), end=at(5), first_byte=at(3)),
        Operation(start=at(1), end=at(6), first_byte=at(2)),
        Operation(start=at(2), end=at(9)),
    ])
    with_fb = ops.filter_by_has_ttfb(True)
    assert len(with_fb) == 2
    assert len(ops.filter_by_has_ttfb(False)) == 1
    with_fb.sort_by_ttfb()
    assert [o.ttfb() for o in with_fb] == sorted(o.ttfb() for o in with_fb)
    inside = ops.filter_inside_range(at(0), at(6))
    assert [o.end for o in inside] == [at(5), at(6)]


def test_clone_and_set_client_id():
    ops = Operations([op(0, 1, client_id="orig")])
    copy = ops.clone()
    copy.set_client_id("new")
    assert ops[0].client_id == "orig"
    assert copy[0].client_id == "new"


def test_multi_touch_and_first_values():
    assert Operations([op(0, 1, file="a"), op(1, 2, file="a")]).is_multi_touch()
    assert not Operations([op(0, 1, file="a"), op(1, 2, file="b")]).is_multi_touch()
    empty = Operations()
    assert (empty.first_op_type(), empty.first_obj_size(), empty.first_obj_per_op()) == ("", 0, 0)
    ops = Operations([op(0, 1, op_type="GET", size=7, obj_per_op=3)])
    assert (ops.first_op_type(), ops.first_obj_size(), ops.first_obj_per_op()) == ("GET", 7, 3)