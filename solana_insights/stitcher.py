#!/usr/bin/env python3
"""
Result stitching for Solana Insights
Joins parallel outcome arrays back onto their identifiers by position
"""

from typing import Callable, List, Sequence, TypeVar

from solana_insights.models import FetchOutcome, StitchError

R = TypeVar('R')


def stitch(identifiers: Sequence[str], *outcome_arrays: Sequence[FetchOutcome],
           build: Callable[..., R]) -> List[R]:
    """
    Build one record per identifier from the outcomes at the same index.

    build is called as build(identifier, outcome_a, outcome_b, ...). Failed
    outcomes already carry their source default in .value.
    """
    expected = len(identifiers)
    for position, outcomes in enumerate(outcome_arrays):
        if len(outcomes) != expected:
            raise StitchError(
                f"Outcome array {position} has {len(outcomes)} entries for {expected} identifiers",
                details={'array': position, 'length': len(outcomes), 'expected': expected}
            )

    return [
        build(identifier, *(outcomes[i] for outcomes in outcome_arrays))
        for i, identifier in enumerate(identifiers)
    ]
