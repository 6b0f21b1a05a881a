import pytest

from cueflow.expressions.catalog import Binding, BindingCatalog, CatalogBuilder, EventKind
from cueflow.expressions.resolver import merge_binding_sets, resolve_bindings
from cueflow.runtime.errors import CatalogError


@pytest.fixture
def family_catalog():
    return BindingCatalog.build(
        {
            "base": {"bindings": {"x": "1 + 1", "shared": "'from base'"}},
            "mixin": {"bindings": {"shared": "'from mixin'", "m": "3"}},
            "child": {
                "inherits": ["base", "mixin"],
                "bindings": {"y": {"code": "x * 10", "requires": "x", "doc": "Ten x."}},
            },
            "override": {"inherits": ["child"], "bindings": {"x": "5"}},
        }
    )


def test_resolution_includes_inherited_bindings(family_catalog):
    resolved = resolve_bindings(family_catalog, "child")

    assert set(resolved) == {"x", "shared", "m", "y"}
    assert resolved["y"].requires == "x"
    assert resolved["y"].doc == "Ten x."


def test_later_parent_wins_and_own_bindings_win_over_parents(family_catalog):
    assert resolve_bindings(family_catalog, "child")["shared"].code == "'from mixin'"
    assert resolve_bindings(family_catalog, "override")["x"].code == "5"
    assert resolve_bindings(family_catalog, "base")["x"].code == "1 + 1"


def test_resolution_is_cached_and_read_only(family_catalog):
    first = resolve_bindings(family_catalog, "child")

    assert resolve_bindings(family_catalog, "child") is first
    with pytest.raises(TypeError):
        first["z"] = Binding(name="z", code="0")  # type: ignore[index]


def test_unknown_kind_is_reported(family_catalog):
    with pytest.raises(KeyError) as exc_info:
        resolve_bindings(family_catalog, "nope")

    assert "nope" in str(exc_info.value)


def test_unknown_parent_is_rejected():
    with pytest.raises(CatalogError) as exc_info:
        BindingCatalog.build({"child": {"inherits": ["ghost"], "bindings": {}}})

    assert "ghost" in str(exc_info.value)


def test_inheritance_cycle_is_rejected():
    with pytest.raises(CatalogError) as exc_info:
        BindingCatalog.build(
            {
                "a": {"inherits": ["b"]},
                "b": {"inherits": ["a"]},
            }
        )

    assert "Cyclic inheritance" in str(exc_info.value)


def test_unparseable_generator_is_rejected():
    with pytest.raises(CatalogError) as exc_info:
        BindingCatalog.build({"k": {"bindings": {"broken": "status.(("}}})

    assert "broken" in str(exc_info.value)


@pytest.mark.parametrize("name", ["not-an-identifier", "class", "1abc"])
def test_invalid_binding_names_are_rejected(name):
    with pytest.raises(CatalogError):
        BindingCatalog.build({"k": {"bindings": {name: "1"}}})


def test_missing_requires_target_is_rejected():
    with pytest.raises(CatalogError) as exc_info:
        BindingCatalog.build({"k": {"bindings": {"y": {"code": "x", "requires": "x"}}}})

    assert "requires unknown binding 'x'" in str(exc_info.value)


def test_cyclic_requires_is_rejected():
    with pytest.raises(CatalogError) as exc_info:
        BindingCatalog.build(
            {
                "k": {
                    "bindings": {
                        "a": {"code": "b", "requires": "b"},
                        "b": {"code": "a", "requires": "a"},
                    }
                }
            }
        )

    assert "Cyclic binding requirements" in str(exc_info.value)


def test_requires_may_target_an_inherited_binding(family_catalog):
    resolved = resolve_bindings(family_catalog, "override")

    assert resolved["y"].requires == "x"


def test_unknown_declaration_fields_are_rejected():
    with pytest.raises(CatalogError):
        BindingCatalog.build({"k": {"bindings": {"a": {"code": "1", "colour": "red"}}}})


def test_extend_returns_new_catalog_and_leaves_original_untouched(family_catalog):
    extended = family_catalog.extend("grandchild", inherits=["child"], bindings={"z": "y + 1"})

    assert "grandchild" in extended
    assert "grandchild" not in family_catalog
    assert set(resolve_bindings(extended, "grandchild")) == {"x", "shared", "m", "y", "z"}


def test_extend_refuses_to_replace_an_existing_kind(family_catalog):
    with pytest.raises(CatalogError):
        family_catalog.extend("child", bindings={"q": "1"})


def test_builder_registers_kinds_fluently():
    catalog = (
        CatalogBuilder()
        .register("parent", {"p": Binding(name="p", code="status", doc="The event.")})
        .register("kid", {"k": "p + 1"}, inherits=["parent"])
        .build()
    )

    resolved = resolve_bindings(catalog, "kid")
    assert resolved["p"].doc == "The event."
    assert resolved["k"].code == "p + 1"


def test_binding_declared_under_a_different_name_is_rejected():
    with pytest.raises(CatalogError):
        BindingCatalog.build({"k": {"bindings": {"a": Binding(name="b", code="1")}}})


def test_merge_binding_sets_prefers_later_sets(family_catalog):
    merged = merge_binding_sets(
        resolve_bindings(family_catalog, "child"),
        resolve_bindings(family_catalog, "override"),
    )

    assert merged["x"].code == "5"
    assert "m" in merged


def test_event_kind_values_work_as_plain_string_keys():
    catalog = BindingCatalog.build({EventKind.BEAT: {"bindings": {"b": "status"}}})

    assert "b" in resolve_bindings(catalog, "beat")
