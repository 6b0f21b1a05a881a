import ast

import pytest

from cueflow.expressions.builder import (
    EXPRESSION_FUNCTION_NAME,
    build_expression_module,
    find_body_yield,
    render_module,
    return_last_value,
)
from cueflow.expressions.catalog import Binding
from cueflow.expressions.planner import plan_bindings
from cueflow.expressions.scanner import referenced_names, scan_references


def _bindings(**declarations):
    result = {}
    for name, value in declarations.items():
        if isinstance(value, tuple):
            code, requires = value
            result[name] = Binding(name=name, code=code, requires=requires)
        else:
            result[name] = Binding(name=name, code=value)
    return result


AVAILABLE = _bindings(
    track_metadata="lookup(status)",
    track_title=("track_metadata.title", "track_metadata"),
    track_artist=("track_metadata.artist", "track_metadata"),
    beat_number="status.beat_number",
    device_number="status.device_number",
)


def test_scanner_finds_names_at_any_depth():
    tree = ast.parse(
        "def helper():\n"
        "    return [n for n in range(beat_number)]\n"
        "f = lambda: device_number\n"
        "f'{track_title}'\n"
    )

    found = scan_references(tree, AVAILABLE)

    assert list(found) == ["beat_number", "device_number", "track_title"]


def test_scanner_ignores_attributes_and_keywords():
    tree = ast.parse("status.beat_number\nprint(device_number=1)\nobj.track_title")

    assert scan_references(tree, AVAILABLE) == {}


def test_scanner_counts_assignment_targets_as_references():
    tree = ast.parse("beat_number = 3")

    assert "beat_number" in referenced_names(tree)
    assert list(scan_references(tree, AVAILABLE)) == ["beat_number"]


def test_plan_emits_required_binding_once_and_first():
    discovered = {name: AVAILABLE[name] for name in ("track_title", "track_artist")}

    plan = plan_bindings(discovered, AVAILABLE)

    assert [entry.name for entry in plan] == ["track_metadata", "track_artist", "track_title"]
    assert plan[0].implicit is True
    assert not any(entry.implicit for entry in plan[1:])


def test_plan_marks_explicit_root_as_not_implicit():
    discovered = {name: AVAILABLE[name] for name in ("track_title", "track_metadata")}

    plan = plan_bindings(discovered, AVAILABLE)

    assert [entry.name for entry in plan] == ["track_metadata", "track_title"]
    assert plan[0].implicit is False


def test_plan_is_deterministic():
    discovered = {name: AVAILABLE[name] for name in ("device_number", "beat_number", "track_title")}
    reordered = dict(reversed(list(discovered.items())))

    first = [entry.name for entry in plan_bindings(discovered, AVAILABLE)]
    second = [entry.name for entry in plan_bindings(reordered, AVAILABLE)]

    assert first == second == ["beat_number", "device_number", "track_metadata", "track_title"]


def test_plan_follows_transitive_requirements():
    available = _bindings(a="1", b=("a + 1", "a"), c=("b + 1", "b"))

    plan = plan_bindings({"c": available["c"]}, available)

    assert [entry.name for entry in plan] == ["a", "b", "c"]
    assert [entry.implicit for entry in plan] == [True, True, False]


def test_plan_reports_missing_requirement():
    available = _bindings(y=("x", "x"))

    with pytest.raises(KeyError):
        plan_bindings({"y": available["y"]}, available)


def test_plan_reports_requirement_cycle():
    available = _bindings(a=("b", "b"), b=("a", "a"))

    with pytest.raises(ValueError):
        plan_bindings({"a": available["a"]}, available)


def test_nil_guard_wraps_every_generator():
    plan = plan_bindings({"beat_number": AVAILABLE["beat_number"]}, AVAILABLE, nil_guarded=True)

    rendered = ast.unparse(plan[0].expression)
    assert rendered == "status.beat_number if status is not None else None"


def test_return_last_value_only_touches_trailing_expression():
    body = ast.parse("x = 1\nx + 1").body
    statements = return_last_value(body)
    assert isinstance(statements[-1], ast.Return)

    assignment_last = return_last_value(ast.parse("x = 1").body)
    assert isinstance(assignment_last[-1], ast.Assign)


def test_built_module_has_locals_prelude_then_body():
    plan = plan_bindings({"beat_number": AVAILABLE["beat_number"]}, AVAILABLE)
    module = build_expression_module(ast.parse("beat_number + 1").body, plan)

    source = render_module(module)

    assert source.startswith(f"def {EXPRESSION_FUNCTION_NAME}(status, trigger_data, globals):")
    lines = [line.strip() for line in source.splitlines()[1:]]
    assert lines == [
        "locals = __cueflow_owner_locals__(trigger_data)",
        "beat_number = status.beat_number",
        "return beat_number + 1",
    ]


def test_no_owner_locals_skips_locals_binding():
    module = build_expression_module(ast.parse("42").body, [], no_owner_locals=True)

    assert "locals" not in render_module(module)


def test_empty_body_builds_a_valid_function():
    module = build_expression_module([], [], no_owner_locals=True)

    compile(module, "empty", "exec")
    assert "pass" in render_module(module)


def test_scanner_binds_names_shadowed_by_comprehension_variables():
    tree = ast.parse("[beat_number for beat_number in (1, 2)]")

    assert list(scan_references(tree, AVAILABLE)) == ["beat_number"]


def test_find_body_yield_ignores_nested_scopes():
    assert find_body_yield(ast.parse("def gen():\n    yield 1\nf = lambda: (yield)\nlist(gen())").body) is None
    assert find_body_yield(ast.parse("x = 1\nif x:\n    y = (yield x)").body).lineno == 3
    assert isinstance(find_body_yield(ast.parse("yield from range(3)").body), ast.YieldFrom)
