import pytest

from radixmux import methods
from radixmux.methods import (
    STANDARD_METHODS,
    STUB,
    all_methods,
    method_flag,
    method_name,
    register_method,
)


@pytest.mark.parametrize("name", STANDARD_METHODS)
def test_standard_methods_round_trip(name):
    flag = method_flag(name)
    assert flag is not None
    assert method_name(flag) == name


def test_standard_flags_are_distinct_single_bits():
    flags = [method_flag(name) for name in STANDARD_METHODS]
    assert len(set(flags)) == len(STANDARD_METHODS)
    for flag in flags:
        assert flag > 0
        assert flag & (flag - 1) == 0


def test_named_constants_match_registry():
    assert method_flag("GET") == methods.GET
    assert method_flag("POST") == methods.POST
    assert method_flag("TRACE") == methods.TRACE


def test_all_methods_contains_every_standard_method_but_not_stub():
    combined = all_methods()
    for name in STANDARD_METHODS:
        assert combined & method_flag(name) == method_flag(name)
    assert combined & STUB == 0


def test_unknown_method_has_no_flag():
    assert method_flag("DIE") is None


def test_lookup_is_case_sensitive():
    assert method_flag("get") is None
    assert method_flag("GET") == methods.GET


def test_stub_and_combined_flags_have_no_name():
    assert method_name(STUB) is None
    assert method_name(all_methods()) is None


def test_register_custom_method():
    flag = register_method("BOO")
    assert flag is not None
    assert method_flag("BOO") == flag
    assert method_name(flag) == "BOO"
    assert flag & (flag - 1) == 0
    assert all_methods() & flag == flag
    assert flag not in {method_flag(name) for name in STANDARD_METHODS}
    assert flag != STUB


def test_register_is_idempotent():
    first = register_method("BOO")
    before = all_methods()
    second = register_method("BOO")
    assert first == second
    assert all_methods() == before


def test_register_upper_cases_name():
    flag = register_method("woof")
    assert method_flag("WOOF") == flag
    assert method_flag("woof") is None


def test_register_empty_name_is_ignored():
    before = all_methods()
    assert register_method("") is None
    assert all_methods() == before


def test_register_existing_standard_method_keeps_flag():
    assert register_method("get") == methods.GET