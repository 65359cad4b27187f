"""Arena of published option sets keyed by (dimension, sequence number)."""

import time
from typing import Callable, Optional

from korauto_catalog.application.dtos.options import OptionSet, OptionSource
from korauto_catalog.domain.errors import StaleResponse
from korauto_catalog.domain.value_objects.dimension import Dimension


class OptionSetStore:
    """Per-dimension sequence numbers plus the "apply only if latest" rule.

    A network list never replaces a non-empty fallback list published under
    the same sequence number when the network list is degenerate, unless the
    fallback has been shown for longer than `trust_empty_after_seconds`.
    """

    def __init__(
        self,
        trust_empty_after_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize option set store.

        Args:
            trust_empty_after_seconds: Age after which an empty network list may
                replace a fallback list (None = never)
            clock: Monotonic clock in seconds
        """
        self._trust_empty_after = trust_empty_after_seconds
        self._clock = clock
        self._latest: dict[Dimension, int] = {}
        self._arena: dict[tuple[Dimension, int], OptionSet] = {}
        self._published_at: dict[tuple[Dimension, int], float] = {}
        self._current: dict[Dimension, tuple[Dimension, int]] = {}

    def issue(self, dimension: Dimension) -> int:
        """Stamp a new request for a dimension and return its sequence number."""
        sequence = self._latest.get(dimension, 0) + 1
        self._latest[dimension] = sequence
        return sequence

    def latest(self, dimension: Dimension) -> int:
        """Latest issued sequence number (0 when nothing was issued)."""
        return self._latest.get(dimension, 0)

    def is_latest(self, dimension: Dimension, sequence: int) -> bool:
        """Check whether a sequence number is still the latest for its dimension."""
        return self._latest.get(dimension, 0) == sequence

    def current(self, dimension: Dimension) -> Optional[OptionSet]:
        """Return the option set currently published for a dimension."""
        key = self._current.get(dimension)
        if key is None:
            return None
        return self._arena.get(key)

    def publish(self, option_set: OptionSet) -> bool:
        """
        Publish an option set if it belongs to the latest request.

        Args:
            option_set: Option set to publish

        Returns:
            True if published, False if an existing fallback list was retained

        Raises:
            StaleResponse: If the sequence number is no longer the latest
        """
        dimension = option_set.dimension
        if not self.is_latest(dimension, option_set.sequence):
            raise StaleResponse(
                "Option set superseded",
                dimension=dimension.value,
                sequence=option_set.sequence,
                latest=self.latest(dimension),
            )

        existing = self.current(dimension)
        if self._keeps_fallback(existing, option_set):
            return False

        key = (dimension, option_set.sequence)
        self._arena[key] = option_set
        self._published_at[key] = self._clock()
        self._current[dimension] = key
        self._prune(dimension, option_set.sequence)
        return True

    def clear(self, dimension: Dimension) -> None:
        """Discard whatever is published for a dimension."""
        self._current.pop(dimension, None)
        self._prune(dimension, self.latest(dimension) + 1)

    def invalidate(self, dimension: Dimension) -> None:
        """Supersede in-flight requests for a dimension and discard its option set."""
        self.issue(dimension)
        self.clear(dimension)

    def _keeps_fallback(self, existing: Optional[OptionSet], incoming: OptionSet) -> bool:
        if existing is None:
            return False
        if existing.sequence != incoming.sequence:
            return False
        if existing.source is not OptionSource.FALLBACK or incoming.source is not OptionSource.NETWORK:
            return False
        if not incoming.is_degenerate or existing.is_degenerate:
            return False
        if self._trust_empty_after is None:
            return True
        published_at = self._published_at.get((existing.dimension, existing.sequence), self._clock())
        return self._clock() - published_at < self._trust_empty_after

    def _prune(self, dimension: Dimension, keep_from: int) -> None:
        for key in [k for k in self._arena if k[0] == dimension and k[1] < keep_from]:
            self._arena.pop(key, None)
            self._published_at.pop(key, None)
