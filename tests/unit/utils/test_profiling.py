from __future__ import annotations

from rulebook.core.utils.profiling import Profiler, enable_profiler, span


def test_span_is_noop_without_profiler():
    with span("idle"):
        pass
    profiler = Profiler()
    assert profiler.records == []


def test_nested_spans_record_depth_and_meta():
    profiler = Profiler()
    with enable_profiler(profiler):
        with span("outer"):
            with span("inner", file="a.yaml"):
                pass

    names = [(r.name, r.depth) for r in profiler.records]
    assert names == [("inner", 1), ("outer", 0)]
    assert profiler.records[0].meta == {"file": "a.yaml"}
    assert set(profiler.to_dict()["totals_ms"]) == {"inner", "outer"}


def test_totals_accumulate_and_render_lists_each_name_once():
    profiler = Profiler()
    with enable_profiler(profiler):
        for _ in range(3):
            with span("loader.file"):
                pass

    assert len(profiler.records) == 3
    assert profiler.render().count("loader.file") == 1
    assert profiler.totals_ms()["loader.file"] >= 0.0


def test_profiler_is_deactivated_on_exit():
    profiler = Profiler()
    with enable_profiler(profiler):
        pass
    with span("after"):
        pass
    assert profiler.records == []
