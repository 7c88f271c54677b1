"""The single definition of "no longer referenced".

Scanners never do their own set exclusion; they call into here.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable


def is_dangling(review_id: int, active_set: AbstractSet[int]) -> bool:
    return review_id not in active_set


def filter_dangling(review_ids: Iterable[int], active_set: AbstractSet[int]) -> list[int]:
    """Keep the ids that are not active, in input order. Duplicates are kept."""
    return [review_id for review_id in review_ids if is_dangling(review_id, active_set)]
