"""Feature table sanitizing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, List, Mapping, Optional, Sequence

from cargo_prebuild.logging import get_logger

logger = get_logger(__name__)

DEP_PREFIX = "dep:"


@dataclass(frozen=True)
class Activation:
    """A parsed feature activation string.

    ``"serde"``, ``"serde/derive"``, ``"serde?/derive"`` and ``"dep:serde"``
    all have ``target == "serde"``.
    """

    raw: str
    target: str
    feature: Optional[str] = None
    explicit_dep: bool = False
    weak: bool = False

    @classmethod
    def parse(cls, raw: str) -> Activation:
        if raw.startswith(DEP_PREFIX):
            return cls(raw=raw, target=raw[len(DEP_PREFIX):], explicit_dep=True)
        if "/" in raw:
            target, feature = raw.split("/", 1)
            weak = target.endswith("?")
            if weak:
                target = target[:-1]
            return cls(raw=raw, target=target, feature=feature, weak=weak)
        return cls(raw=raw, target=raw)


def references(activation: str, excluded: AbstractSet[str]) -> bool:
    """True if ``activation`` names one of the ``excluded`` dependencies."""
    return Activation.parse(activation).target in excluded


def sanitize_feature_list(activations: Sequence[str], excluded: AbstractSet[str]) -> List[str]:
    return [activation for activation in activations if not references(activation, excluded)]


def sanitize_features(
    features: Mapping[str, Sequence[str]],
    excluded: AbstractSet[str],
) -> Dict[str, List[str]]:
    """
    Drop every activation referencing an excluded dependency.

    Feature names are always kept, even when their activation list ends up
    empty, so other features may still list them.
    """
    excluded = frozenset(excluded)
    sanitized: Dict[str, List[str]] = {}
    for feature, activations in features.items():
        kept = sanitize_feature_list(activations, excluded)
        if len(kept) != len(activations):
            dropped = [activation for activation in activations if activation not in kept]
            logger.debug("feature %s: dropped %s", feature, ", ".join(dropped))
        sanitized[feature] = kept
    return sanitized


__all__ = [
    "Activation",
    "references",
    "sanitize_feature_list",
    "sanitize_features",
]
