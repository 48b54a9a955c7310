"""
Owner name resolution for exported CSV rows.
"""
from typing import Dict, Optional, Sequence, Tuple

from fuzzywuzzy import fuzz
from loguru import logger

from furfolio_analytics.models import DogOwner


class OwnerMatch:
    """Represents the match of a free-text owner name to a known owner."""

    def __init__(self, name: str, owner_id: str, confidence: float, match_type: str):
        self.name = name
        self.owner_id = owner_id
        self.confidence = confidence
        self.match_type = match_type

    def __str__(self) -> str:
        return f"Match({self.name!r} -> {self.owner_id}, confidence={self.confidence:.2f}, type={self.match_type})"


class OwnerResolver:
    """
    Resolves owner names found in appointment, charge and behavior exports.

    An exact case-insensitive match wins; otherwise the owner with the best
    fuzzy ratio is used when it reaches ``threshold``.
    """

    def __init__(self, owners: Sequence[DogOwner], threshold: float = 0.85):
        """
        Initialize the owner resolver.

        Args:
            owners: Known owners
            threshold: Minimum fuzzy similarity in [0, 1]
        """
        self.threshold = threshold
        self._owners: Tuple[Tuple[str, str], ...] = tuple(
            (self._normalize(owner.owner_name), owner.id) for owner in owners
        )
        self._exact: Dict[str, str] = {}
        for name, owner_id in self._owners:
            self._exact.setdefault(name, owner_id)
        self._cache: Dict[str, Optional[OwnerMatch]] = {}
        self.unresolved: Dict[str, int] = {}

    @staticmethod
    def _normalize(name: str) -> str:
        return ' '.join(str(name).strip().lower().split())

    def _fuzzy_similarity(self, val1: str, val2: str) -> float:
        """
        Calculate fuzzy string similarity.

        Args:
            val1: First value
            val2: Second value

        Returns:
            Similarity score between 0 and 1
        """
        return fuzz.ratio(val1, val2) / 100.0

    def match(self, name: Optional[str]) -> Optional[OwnerMatch]:
        """
        Best match for ``name``, or None when nothing is close enough.
        """
        if name is None:
            return None
        key = self._normalize(name)
        if not key:
            return None
        if key in self._cache:
            cached = self._cache[key]
            if cached is None:
                self.unresolved[key] += 1
            return cached

        result = None
        if key in self._exact:
            result = OwnerMatch(name, self._exact[key], 1.0, 'exact')
        else:
            best_id, best_score = None, 0.0
            for candidate, owner_id in self._owners:
                score = self._fuzzy_similarity(key, candidate)
                if score > best_score:
                    best_id, best_score = owner_id, score
            if best_id is not None and best_score >= self.threshold:
                result = OwnerMatch(name, best_id, best_score, 'fuzzy')
                logger.debug(f"Fuzzy resolved owner {result}")

        if result is None:
            self.unresolved[key] = self.unresolved.get(key, 0) + 1
            logger.warning(f"Could not resolve owner name '{name}'")
        self._cache[key] = result
        return result

    def resolve(self, name: Optional[str]) -> Optional[str]:
        """Owner id for ``name``, or None when it cannot be resolved."""
        result = self.match(name)
        return result.owner_id if result else None
