import threading
import time

import pytest

from cueflow.expressions.catalog import Binding, BindingCatalog
from cueflow.expressions.compiler import compile_expression, compile_source
from cueflow.expressions.resolver import resolve_bindings
from cueflow.expressions.shared import load_shared_definitions
from cueflow.runtime.errors import CompileError
from cueflow.runtime.state import OwnerContext, StateBag
from cueflow.runtime.tracing import ExpressionTracer
from cueflow.runtime.workspace import SharedWorkspace


class Event:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def get_field(self):
        self.calls += 1
        return self.value


@pytest.fixture
def workspace():
    return SharedWorkspace("compiler-tests")


@pytest.fixture
def catalog():
    return BindingCatalog.build(
        {
            "base": {"bindings": {"x": "1 + 1"}},
            "child": {"inherits": ["base"], "bindings": {"y": {"code": "x * 10", "requires": "x"}}},
            "event": {
                "bindings": {
                    "field": "status.get_field()",
                    "doubled": {"code": "field * 2", "requires": "field"},
                }
            },
        }
    )


def test_inherited_binding_chain_is_bound_in_order(catalog, workspace):
    compiled = compile_expression("y", resolve_bindings(catalog, "child"), workspace=workspace)

    assert compiled.prelude == ("x", "y")
    assert compiled(None, None, None) == 20


def test_expression_without_bindings_has_empty_prelude(catalog, workspace):
    compiled = compile_expression("42", resolve_bindings(catalog, "child"), workspace=workspace)

    assert compiled.prelude == ()
    assert compiled() == 42


def test_nil_guard_lets_missing_status_through(catalog, workspace):
    bindings = resolve_bindings(catalog, "event")
    compiled = compile_expression("field", bindings, nil_guarded=True, workspace=workspace)

    assert compiled(None, None, None) is None
    assert compiled(Event(7), None, None) == 7


def test_unguarded_binding_fails_on_missing_status(catalog, workspace):
    compiled = compile_expression("field", resolve_bindings(catalog, "event"), workspace=workspace)

    with pytest.raises(AttributeError):
        compiled(None, None, None)


def test_unused_bindings_are_never_evaluated(catalog, workspace):
    event = Event(3)
    compiled = compile_expression("status.value + 1", resolve_bindings(catalog, "event"), workspace=workspace)

    assert compiled(event) == 4
    assert event.calls == 0


def test_required_binding_is_evaluated_once(catalog, workspace):
    event = Event(5)
    compiled = compile_expression(
        "field + doubled", resolve_bindings(catalog, "event"), workspace=workspace
    )

    assert compiled(event) == 15
    assert event.calls == 1


def test_syntax_error_carries_title_and_position(catalog, workspace):
    with pytest.raises(CompileError) as exc_info:
        compile_expression("(foo", resolve_bindings(catalog, "child"), title="Trigger 1 Beat", workspace=workspace)

    error = exc_info.value
    assert error.title == "Trigger 1 Beat"
    assert error.line == 1
    assert "Trigger 1 Beat" in str(error)
    assert isinstance(error.cause, SyntaxError)


def test_unbindable_prelude_is_a_compile_error(workspace):
    orphan = {"z": Binding(name="z", code="y", requires="y")}

    with pytest.raises(CompileError) as exc_info:
        compile_expression("z", orphan, title="Orphan", workspace=workspace)

    assert exc_info.value.title == "Orphan"


def test_last_statement_value_is_returned_and_statements_may_precede_it(catalog, workspace):
    compiled = compile_expression(
        "total = 0\nfor n in range(4):\n    total += n\ntotal * x",
        resolve_bindings(catalog, "child"),
        workspace=workspace,
    )

    assert compiled() == 12


def test_body_ending_in_a_statement_returns_none(catalog, workspace):
    compiled = compile_expression("value = x", resolve_bindings(catalog, "child"), workspace=workspace)

    assert compiled() is None


def test_explicit_return_is_allowed(catalog, workspace):
    compiled = compile_expression(
        "if status is None:\n    return 'idle'\n'busy'",
        resolve_bindings(catalog, "child"),
        workspace=workspace,
    )

    assert compiled() == "idle"
    assert compiled(object()) == "busy"


def test_shared_definitions_are_visible_to_later_expressions(catalog, workspace):
    load_shared_definitions("def double(n):\n    return n * 2", "Shared Functions", workspace=workspace)

    compiled = compile_expression("double(21)", resolve_bindings(catalog, "child"), workspace=workspace)

    assert compiled() == 42


def test_redefining_shared_function_changes_existing_expressions(catalog, workspace):
    load_shared_definitions("def pick():\n    return 'old'", "Shared", workspace=workspace)
    compiled = compile_expression("pick()", resolve_bindings(catalog, "child"), workspace=workspace)
    assert compiled() == "old"

    load_shared_definitions("def pick():\n    return 'new'", "Shared", workspace=workspace)

    assert compiled() == "new"


def test_workspaces_are_isolated(catalog):
    first = SharedWorkspace("show-a")
    second = SharedWorkspace("show-b")
    load_shared_definitions("marker = 'a'", "Shared", workspace=first)

    assert compile_expression("marker", {}, workspace=first)() == "a"
    with pytest.raises(NameError):
        compile_expression("marker", {}, workspace=second)()


def test_recompiling_same_source_is_idempotent(catalog, workspace):
    bindings = resolve_bindings(catalog, "child")
    first = compile_expression("y + 1", bindings, workspace=workspace)
    second = compile_expression("y + 1", bindings, workspace=workspace)

    assert first.prelude == second.prelude
    assert first.generated_source == second.generated_source
    assert first() == second() == 21
    assert first.function is not second.function


def test_locals_come_from_the_owner_context(catalog, workspace):
    compiled = compile_expression(
        "locals['count'] = locals.get('count', 0) + 1\nlocals['count']",
        resolve_bindings(catalog, "child"),
        workspace=workspace,
    )
    context = OwnerContext(locals=StateBag())

    assert compiled(None, context, StateBag()) == 1
    assert compiled(None, context, StateBag()) == 2
    assert context.locals["count"] == 2


def test_locals_tolerates_missing_trigger_data(catalog, workspace):
    compiled = compile_expression("locals", resolve_bindings(catalog, "child"), workspace=workspace)

    assert compiled(None, None, None) is None
    assert compiled(None, {"locals": {"a": 1}}, None) == {"a": 1}


def test_no_owner_locals_leaves_builtin_locals_alone(catalog, workspace):
    compiled = compile_expression(
        "globals['seen'] = True\nsorted(locals())",
        resolve_bindings(catalog, "child"),
        no_owner_locals=True,
        workspace=workspace,
    )
    state = StateBag()

    assert compiled(None, None, state) == ["globals", "status", "trigger_data"]
    assert state["seen"] is True
    assert compiled.no_owner_locals is True


def test_compile_source_routes_shared_definitions_to_the_loader(catalog, workspace):
    assert compile_source("def triple(n):\n    return n * 3", shared_definitions=True, workspace=workspace) is None

    compiled = compile_source("triple(x)", resolve_bindings(catalog, "child"), workspace=workspace)

    assert compiled() == 6


def test_compile_source_requires_bindings_for_ordinary_expressions(workspace):
    with pytest.raises(ValueError):
        compile_source("1", workspace=workspace)


def test_tracer_records_compile_events(catalog, workspace):
    tracer = ExpressionTracer(enabled=True)

    compile_expression("y", resolve_bindings(catalog, "child"), title="Traced", workspace=workspace, tracer=tracer)

    kinds = [event["type"] for event in tracer.as_list()]
    assert kinds == ["compile_start", "compile_end"]
    assert tracer.of_type("compile_end")[0]["prelude"] == ["x", "y"]


def test_concurrent_compiles_against_one_workspace(catalog, workspace):
    bindings = resolve_bindings(catalog, "child")
    results = []
    errors = []

    def worker(n):
        try:
            compiled = compile_expression(f"y + {n}", bindings, workspace=workspace)
            results.append(compiled())
        except Exception as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(results) == [20 + n for n in range(8)]


def test_shared_loads_never_interleave(workspace):
    load_shared_definitions("import time\nevents = []", "Setup", workspace=workspace)
    start = threading.Barrier(2)
    errors = []

    def loader(tag):
        source = f"events.append(('{tag}', 'start'))\ntime.sleep(0.05)\nevents.append(('{tag}', 'end'))"
        try:
            start.wait()
            load_shared_definitions(source, f"Shared {tag}", workspace=workspace)
        except Exception as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=loader, args=(tag,)) for tag in ("a", "b")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    events = workspace.lookup("events")
    assert errors == []
    assert len(events) == 4
    assert events[0][0] == events[1][0]
    assert events[2][0] == events[3][0]
    assert [step for _, step in events] == ["start", "end", "start", "end"]


def test_compile_waits_for_a_load_in_progress(catalog, workspace):
    finished = []

    def compiler():
        finished.append(compile_expression("y", resolve_bindings(catalog, "child"), workspace=workspace)())

    with workspace.lock:
        thread = threading.Thread(target=compiler)
        thread.start()
        thread.join(timeout=0.1)
        assert thread.is_alive()
        assert finished == []
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert finished == [20]


def test_compile_time_syntax_error_reports_location_once(catalog, workspace):
    with pytest.raises(CompileError) as exc_info:
        compile_expression("global x\nx", resolve_bindings(catalog, "child"), title="G", workspace=workspace)

    error = exc_info.value
    assert error.message.startswith("Syntax error: name 'x' is assigned to before global declaration")
    assert "(G, line" not in str(error)
    assert isinstance(error.cause, SyntaxError)


def test_top_level_yield_is_rejected(workspace):
    with pytest.raises(CompileError) as exc_info:
        compile_expression("yield 1\n5", {}, title="Generator", workspace=workspace)

    assert exc_info.value.message == "'yield' is not allowed in an expression body"
    assert exc_info.value.line == 1
    assert exc_info.value.column == 1


def test_yield_inside_nested_function_is_allowed(workspace):
    compiled = compile_expression("def gen():\n    yield 1\n    yield 2\nlist(gen())", {}, workspace=workspace)

    assert compiled() == [1, 2]
