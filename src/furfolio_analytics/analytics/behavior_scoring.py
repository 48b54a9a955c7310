import logging
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Sequence

import pandas as pd

from ..models import PetBehaviorLog

logger = logging.getLogger(__name__)


class SeverityLevel(IntEnum):
    """Severity of a behavior note, ordered from least to most severe."""
    CALM = 0
    MILD = 1
    MODERATE = 2
    SEVERE = 3

    @property
    def label(self) -> str:
        return self.name.title()

    @property
    def emoji(self) -> str:
        return {
            SeverityLevel.CALM: "🟢",
            SeverityLevel.MILD: "🟡",
            SeverityLevel.MODERATE: "🟠",
            SeverityLevel.SEVERE: "🔴",
        }[self]


class RiskCategory(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


DEFAULT_KEYWORDS: Dict[SeverityLevel, List[str]] = {
    SeverityLevel.CALM: ["calm", "friendly"],
    SeverityLevel.MILD: ["anxious", "nervous"],
    SeverityLevel.MODERATE: ["agitated"],
    SeverityLevel.SEVERE: ["aggressive", "bite", "bit"],
}


def _parse_level(key) -> SeverityLevel:
    if isinstance(key, SeverityLevel):
        return key
    if isinstance(key, int):
        return SeverityLevel(key)
    try:
        return SeverityLevel[str(key).strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown severity level: {key}")


class BehaviorScoring:
    """
    Keyword based severity scoring of free-text behavior notes.

    Levels are checked from most to least severe and the first level with a
    matching keyword wins, so "calm until he tried to bite" is severe. A keyword
    matches anywhere in the lowercased note, so "bit" also matches "habit".
    Notes without any keyword are calm.
    """

    def __init__(self, keyword_map: Optional[Dict] = None):
        """
        Args:
            keyword_map: Severity level (enum, int or name) to keyword list;
                defaults to DEFAULT_KEYWORDS
        """
        source = keyword_map if keyword_map else DEFAULT_KEYWORDS
        self.keyword_map: Dict[SeverityLevel, List[str]] = {
            _parse_level(level): [k.lower() for k in keywords] for level, keywords in source.items()
        }

    def score(self, note: str) -> SeverityLevel:
        """Severity level of a single note."""
        text = (note or '').lower()
        for level in sorted(self.keyword_map, reverse=True):
            if any(keyword and keyword in text for keyword in self.keyword_map[level]):
                return level
        return SeverityLevel.CALM

    def average_severity(self, notes: Sequence[str]) -> float:
        """Mean severity value of the notes, 0.0 when there are none."""
        if not notes:
            return 0.0
        return sum(int(self.score(note)) for note in notes) / len(notes)

    def average_severity_from_logs(self, logs: Sequence[PetBehaviorLog]) -> float:
        return self.average_severity([log.note for log in logs])

    @staticmethod
    def risk_category(average: float) -> RiskCategory:
        if average < 1:
            return RiskCategory.LOW
        if average < 2:
            return RiskCategory.MODERATE
        return RiskCategory.HIGH

    def risk_category_from_logs(self, logs: Sequence[PetBehaviorLog]) -> RiskCategory:
        return self.risk_category(self.average_severity_from_logs(logs))

    def dog_profiles(self, logs: Sequence[PetBehaviorLog]) -> pd.DataFrame:
        """
        Per-dog behavior summary.

        Args:
            logs: Behavior logs; logs without a dog id are ignored

        Returns:
            DataFrame indexed by ``dog_id`` with ``log_count``, ``average_severity``,
            ``max_severity``, ``risk_category`` and ``last_logged`` columns,
            highest average severity first
        """
        columns = ['log_count', 'average_severity', 'max_severity', 'risk_category', 'last_logged']
        rows = [
            {'dog_id': log.dog_id, 'severity': int(self.score(log.note)), 'date_logged': log.date_logged}
            for log in logs if log.dog_id
        ]
        if not rows:
            return pd.DataFrame(columns=columns, index=pd.Index([], name='dog_id'))

        df = pd.DataFrame(rows)
        profiles = df.groupby('dog_id').agg(
            log_count=('severity', 'size'),
            average_severity=('severity', 'mean'),
            max_severity=('severity', 'max'),
            last_logged=('date_logged', 'max'),
        )
        profiles['risk_category'] = [self.risk_category(avg).value for avg in profiles['average_severity']]
        profiles = profiles.sort_values(['average_severity', 'log_count'], ascending=False)

        logger.info(f"Built behavior profiles for {len(profiles)} dogs from {len(rows)} logs")
        return profiles[columns]
