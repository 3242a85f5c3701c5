"""Test feature table sanitizing."""

from itertools import combinations

import pytest

from cargo_prebuild.features import Activation, references, sanitize_features


def test_scenario_removes_dependency_feature():
    features = {"default": ["local_a/foo", "serde"]}

    assert sanitize_features(features, {"local_a"}) == {"default": ["serde"]}


def test_name_boundary_is_exact():
    """'foo' must not match 'foobar'."""
    features = {"default": ["foobar", "foobar/std", "dep:foobar", "foo"]}

    assert sanitize_features(features, {"foo"}) == {
        "default": ["foobar", "foobar/std", "dep:foobar"],
    }


@pytest.mark.parametrize(
    "raw, target, feature, explicit, weak",
    [
        ("serde", "serde", None, False, False),
        ("serde/derive", "serde", "derive", False, False),
        ("serde?/derive", "serde", "derive", False, True),
        ("dep:serde", "serde", None, True, False),
    ],
)
def test_activation_parsing(raw, target, feature, explicit, weak):
    activation = Activation.parse(raw)
    assert activation.target == target
    assert activation.feature == feature
    assert activation.explicit_dep is explicit
    assert activation.weak is weak


def test_all_activation_forms_are_removed():
    features = {
        "full": ["local_a", "local_a/std", "local_a?/std", "dep:local_a", "serde/rc"],
    }
    assert sanitize_features(features, {"local_a"}) == {"full": ["serde/rc"]}


def test_emptied_features_are_kept():
    features = {"default": ["local_a"], "extras": ["default", "dep:local_a"], "none": []}

    sanitized = sanitize_features(features, {"local_a"})

    assert sanitized == {"default": [], "extras": ["default"], "none": []}
    assert list(sanitized) == ["default", "extras", "none"]


def test_input_is_not_modified():
    features = {"default": ["local_a/foo", "serde"]}
    sanitize_features(features, {"local_a"})
    assert features == {"default": ["local_a/foo", "serde"]}


def test_references():
    assert references("dep:tokio", {"tokio"})
    assert references("tokio?/rt", {"tokio"})
    assert not references("tokio-util/rt", {"tokio"})


def test_no_surviving_reference_for_any_exclusion_set():
    features = {
        "default": ["a", "b/x", "c"],
        "more": ["dep:a", "b?/y", "default", "ab/z"],
        "empty": [],
    }
    names = ["a", "b", "c", "ab"]
    for size in range(len(names) + 1):
        for excluded in combinations(names, size):
            sanitized = sanitize_features(features, set(excluded))
            assert list(sanitized) == list(features)
            for activations in sanitized.values():
                for activation in activations:
                    assert Activation.parse(activation).target not in excluded
