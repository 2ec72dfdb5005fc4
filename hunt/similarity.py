"""Graded title similarity.

Inputs are expected to be normalized already (see hunt.normalize). The matcher
only reports; the duplicate threshold lives in hunt.dedup.
"""
from __future__ import annotations

from dataclasses import dataclass

from rapidfuzz.distance import JaroWinkler

PREFIX_WEIGHT = 0.1


@dataclass(frozen=True)
class TitleMatch:
    score: float
    exact: bool
    # one title appears verbatim inside the other
    contains: bool
    shorter_len: int = 0


def similarity(a: str, b: str) -> float:
    """Jaro-Winkler similarity in [0.0, 1.0]; 1.0 for identical strings."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    # fixed argument order keeps the score exactly symmetric
    lo, hi = sorted((a, b))
    return float(JaroWinkler.similarity(lo, hi, prefix_weight=PREFIX_WEIGHT))


def contains(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a in b or b in a


def compare_titles(a: str, b: str) -> TitleMatch:
    return TitleMatch(
        score=similarity(a, b),
        exact=a == b,
        contains=contains(a, b),
        shorter_len=min(len(a), len(b)),
    )
