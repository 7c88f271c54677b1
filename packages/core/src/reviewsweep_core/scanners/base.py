"""Base scanner implementing the Template Method pattern.

All backends share the same scan algorithm:
    scan() → list_names()           ← only this differs per backend
           → rule.matches() / rule.extract()
           → filter_dangling()

Subclasses implement two things only:
  - __init__: store whatever the SDK client needs
  - list_names: make one enumeration call and return resource names

The naming rule is a class attribute, so each backend's convention lives
next to its client and the matching/parsing code exists exactly once.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AbstractSet, Optional

from reviewsweep_core.exceptions import ReviewIdParseError, ScanError, SweepError
from reviewsweep_core.orphans import filter_dangling
from reviewsweep_core.scope import CancelScope

logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class NamingRule:
    """Which resource names are review-owned, and where their review id sits."""

    pattern: str
    index: int
    delimiter: str = "-"
    _compiled: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_compiled", re.compile(self.pattern))

    def matches(self, name: str) -> bool:
        return self._compiled.match(name) is not None

    def extract(self, name: str, backend: str = "") -> int:
        """Return the review id embedded in ``name``.

        Raises ReviewIdParseError when the segment is missing or not a plain
        non-negative integer.
        """
        segments = name.split(self.delimiter)
        if self.index >= len(segments):
            raise ReviewIdParseError(backend, name, None)
        segment = segments[self.index]
        if not _DIGITS_RE.fullmatch(segment):
            raise ReviewIdParseError(backend, name, segment)
        return int(segment)


class ResourceScanner(ABC):
    label: str = ""
    rule: NamingRule

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def scan(self, active_set: AbstractSet[int], scope: Optional[CancelScope] = None) -> list[int]:
        """Enumerate once and return the dangling review ids in enumeration order.

        Non-matching names are ignored. A matching name with a bad id segment
        fails the whole scan; an empty result must mean "nothing dangling",
        never "the convention changed".
        """
        scope = scope or CancelScope()
        scope.check()
        try:
            names = list(self.list_names(scope))
        except SweepError:
            raise
        except Exception as e:
            raise ScanError(self.label, detail=f"Listing failed ({type(e).__name__}): {e}") from e
        scope.check()

        review_ids = self.extract_ids(names)
        dangling = filter_dangling(review_ids, active_set)
        logger.debug(
            "%s: %d name(s), %d review-owned, %d dangling",
            self.label,
            len(names),
            len(review_ids),
            len(dangling),
        )
        return dangling

    def extract_ids(self, names: list[str]) -> list[int]:
        return [self.rule.extract(name, self.label) for name in names if self.rule.matches(name)]

    # ------------------------------------------------------------------ #
    # Abstract — implement in each backend                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def list_names(self, scope: CancelScope) -> list[str]:
        """Make a single read-only listing call and return resource names.

        Should raise on failure; scan() wraps SDK errors in ScanError.
        ``scope.remaining()`` is the time budget for the call, if any.
        """
