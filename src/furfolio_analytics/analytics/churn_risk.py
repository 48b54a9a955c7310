import logging
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional, Sequence

import numpy as np
import pandas as pd

from ..audit import AuditLog
from ..config import ChurnConfig
from ..models import Charge, DogOwner
from ..utils import days_between

logger = logging.getLogger(__name__)

SCORE_COLUMNS = [
    'owner_id', 'owner_name', 'recency_days', 'frequency', 'monetary',
    'recency_score', 'frequency_score', 'monetary_score', 'churn_risk', 'risk_band'
]


class RFMValues(NamedTuple):
    """Raw recency / frequency / monetary values for one owner."""
    recency_days: Optional[int]
    frequency: int
    monetary: float


class ChurnRiskEngine:
    """
    RFM based churn risk scoring.

    Each dimension is normalised against a fixed cap, so a score depends only on
    the owner being scored and never on the rest of the population. Recency
    pushes the risk up; frequency and monetary value pull it down.
    """

    def __init__(self, config: Optional[ChurnConfig] = None, audit_log: Optional[AuditLog] = None):
        """
        Initialize the churn engine.

        Args:
            config: Weights, caps and band thresholds
            audit_log: Optional audit log receiving high-risk predictions
        """
        self.config = config or ChurnConfig()
        self.audit_log = audit_log

        total = self.config.recency_weight + self.config.frequency_weight + self.config.monetary_weight
        self._weights = (
            self.config.recency_weight / total,
            self.config.frequency_weight / total,
            self.config.monetary_weight / total,
        )

    def rfm(self, owner: DogOwner, charges: Sequence[Charge], now: Optional[datetime] = None) -> RFMValues:
        """
        Raw RFM values for an owner.

        Args:
            owner: Owner to evaluate
            charges: Charges of all owners; only the owner's own are used
            now: Reference time, defaults to the current time

        Returns:
            RFMValues with recency in days (None without any visit)
        """
        now = now or datetime.now()
        visits = owner.visits_before(now)
        recency = days_between(visits[-1], now) if visits else None
        frequency = len(owner.completed_appointments)
        monetary = sum(c.amount for c in charges if c.owner_id == owner.id)
        return RFMValues(recency, frequency, float(monetary))

    def normalized_scores(self, values: RFMValues) -> Dict[str, float]:
        """Capped linear normalisation of each RFM dimension into [0, 1]."""
        cfg = self.config
        if values.recency_days is None:
            r = 1.0
        else:
            r = float(np.clip(values.recency_days / cfg.recency_cap_days, 0.0, 1.0))
        f = float(np.clip(values.frequency / cfg.frequency_cap, 0.0, 1.0))
        m = float(np.clip(values.monetary / cfg.monetary_cap, 0.0, 1.0))
        return {'recency_score': r, 'frequency_score': f, 'monetary_score': m}

    def risk_from_values(self, values: RFMValues) -> float:
        scores = self.normalized_scores(values)
        w_r, w_f, w_m = self._weights
        risk = (w_r * scores['recency_score']
                + w_f * (1 - scores['frequency_score'])
                + w_m * (1 - scores['monetary_score']))
        return float(np.clip(risk, 0.0, 1.0))

    def churn_risk(self, owner: DogOwner, charges: Sequence[Charge], now: Optional[datetime] = None) -> float:
        """Churn risk in [0, 1] for a single owner."""
        return self.risk_from_values(self.rfm(owner, charges, now))

    def risk_band(self, score: float) -> str:
        """Band label for a risk score: low, moderate or high."""
        if score < self.config.moderate_threshold:
            return 'low'
        if score < self.config.high_threshold:
            return 'moderate'
        return 'high'

    def predict_churn(self, owner: DogOwner, charges: Sequence[Charge], now: Optional[datetime] = None) -> bool:
        """
        Whether the owner is likely to churn.

        High-risk predictions are written to the audit log when one is attached.
        """
        now = now or datetime.now()
        score = self.churn_risk(owner, charges, now)
        likely = score >= self.config.high_threshold
        if likely and self.audit_log is not None:
            self.audit_log.record('churn_predicted',
                                  {'owner_id': owner.id, 'risk': round(score, 4)}, timestamp=now)
        return likely

    def score_owners(self,
                     owners: Sequence[DogOwner],
                     charges: Sequence[Charge],
                     now: Optional[datetime] = None) -> pd.DataFrame:
        """
        Score every owner at once.

        Args:
            owners: Owners to score
            charges: Charges of all owners
            now: Reference time, defaults to the current time

        Returns:
            DataFrame with one row per owner, highest risk first
        """
        now = now or datetime.now()
        if not owners:
            return pd.DataFrame(columns=SCORE_COLUMNS)

        spend: Dict[str, float] = {}
        for charge in charges:
            if charge.owner_id:
                spend[charge.owner_id] = spend.get(charge.owner_id, 0.0) + charge.amount

        rows: List[Dict] = []
        for owner in owners:
            visits = owner.visits_before(now)
            rows.append({
                'owner_id': owner.id,
                'owner_name': owner.owner_name,
                'recency_days': days_between(visits[-1], now) if visits else np.nan,
                'frequency': len(owner.completed_appointments),
                'monetary': spend.get(owner.id, 0.0),
            })
        df = pd.DataFrame(rows)

        cfg = self.config
        recency = df['recency_days'].to_numpy(dtype=float)
        df['recency_score'] = np.where(np.isnan(recency), 1.0,
                                       np.clip(recency / cfg.recency_cap_days, 0.0, 1.0))
        df['frequency_score'] = np.clip(df['frequency'].to_numpy(dtype=float) / cfg.frequency_cap, 0.0, 1.0)
        df['monetary_score'] = np.clip(df['monetary'].to_numpy(dtype=float) / cfg.monetary_cap, 0.0, 1.0)

        w_r, w_f, w_m = self._weights
        risk = (w_r * df['recency_score']
                + w_f * (1 - df['frequency_score'])
                + w_m * (1 - df['monetary_score']))
        df['churn_risk'] = np.clip(risk.to_numpy(), 0.0, 1.0)
        df['risk_band'] = [self.risk_band(score) for score in df['churn_risk']]

        df = df.sort_values('churn_risk', ascending=False, kind='mergesort').reset_index(drop=True)

        high = int((df['risk_band'] == 'high').sum())
        logger.info(f"Scored {len(df)} owners for churn risk, {high} in the high band")
        if self.audit_log is not None and high:
            self.audit_log.record('churn_scores_computed', {'owners': len(df), 'high_risk': high}, timestamp=now)

        return df[SCORE_COLUMNS]
