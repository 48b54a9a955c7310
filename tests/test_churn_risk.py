import math

import pytest

from furfolio_analytics.analytics import ChurnRiskEngine, RFMValues
from furfolio_analytics.audit import AuditLog
from furfolio_analytics.config import ChurnConfig
from furfolio_analytics.models import AppointmentStatus


@pytest.fixture
def engine():
    return ChurnRiskEngine()


class TestRFM:
    def test_values(self, engine, make_owner, make_charge, now):
        owner = make_owner([100, 40, 10])
        charges = [make_charge(60.0), make_charge(40.0), make_charge(500.0, owner_id="someone-else")]
        assert engine.rfm(owner, charges, now) == RFMValues(10, 3, 100.0)

    def test_no_visits(self, engine, make_owner, now):
        values = engine.rfm(make_owner([]), [], now)
        assert values.recency_days is None
        assert values.frequency == 0
        assert values.monetary == 0.0

    def test_cancelled_visits_do_not_count(self, engine, make_owner, now):
        owner = make_owner([5], status=AppointmentStatus.CANCELLED)
        assert engine.rfm(owner, [], now).recency_days is None


class TestScoring:
    def test_normalisation_is_capped(self, engine):
        scores = engine.normalized_scores(RFMValues(400, 30, 5000.0))
        assert scores == {'recency_score': 1.0, 'frequency_score': 1.0, 'monetary_score': 1.0}

    def test_missing_recency_is_maximum(self, engine):
        assert engine.normalized_scores(RFMValues(None, 0, 0.0))['recency_score'] == 1.0

    def test_never_visited_owner_is_highest_risk(self, engine, make_owner, now):
        assert engine.churn_risk(make_owner([]), [], now) == pytest.approx(1.0)

    def test_loyal_owner_is_low_risk(self, engine, make_owner, make_charge, now):
        owner = make_owner([0] * 12)
        charges = [make_charge(100.0) for _ in range(10)]
        assert engine.churn_risk(owner, charges, now) == pytest.approx(0.0)

    def test_weighted_formula(self, engine):
        # r = 90/180, f = 6/12, m = 500/1000
        risk = engine.risk_from_values(RFMValues(90, 6, 500.0))
        assert risk == pytest.approx(0.5 * 0.5 + 0.3 * 0.5 + 0.2 * 0.5)

    def test_weights_are_normalised(self):
        engine = ChurnRiskEngine(ChurnConfig(recency_weight=2, frequency_weight=0, monetary_weight=0))
        assert engine.risk_from_values(RFMValues(90, 0, 0.0)) == pytest.approx(0.5)

    @pytest.mark.parametrize("score,band", [(0.0, 'low'), (0.32, 'low'), (0.33, 'moderate'),
                                            (0.65, 'moderate'), (0.66, 'high'), (1.0, 'high')])
    def test_risk_band(self, engine, score, band):
        assert engine.risk_band(score) == band

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            ChurnConfig(recency_weight=-1)
        with pytest.raises(ValueError):
            ChurnConfig(recency_weight=0, frequency_weight=0, monetary_weight=0)


class TestPrediction:
    def test_predict_churn_records_audit_event(self, make_owner, now):
        audit = AuditLog()
        engine = ChurnRiskEngine(audit_log=audit)
        assert engine.predict_churn(make_owner([]), [], now) is True
        events = audit.recent()
        assert len(events) == 1
        assert events[0].name == 'churn_predicted'

    def test_recent_owner_not_predicted(self, make_owner, make_charge, now):
        audit = AuditLog()
        engine = ChurnRiskEngine(audit_log=audit)
        owner = make_owner([2, 20, 40, 60, 80])
        assert engine.predict_churn(owner, [make_charge(400.0)], now) is False
        assert len(audit) == 0


class TestScoreOwners:
    def test_dataframe_sorted_by_risk(self, engine, make_owner, make_charge, now):
        owners = [
            make_owner([5, 30, 60], owner_id="a", name="Active Annie"),
            make_owner([], owner_id="b", name="Never Ned"),
            make_owner([150], owner_id="c", name="Lapsed Lou"),
        ]
        charges = [make_charge(300.0, owner_id="a"), make_charge(50.0, owner_id="c")]
        df = engine.score_owners(owners, charges, now)

        assert list(df['owner_id']) == ["b", "c", "a"]
        assert list(df.columns) == [
            'owner_id', 'owner_name', 'recency_days', 'frequency', 'monetary',
            'recency_score', 'frequency_score', 'monetary_score', 'churn_risk', 'risk_band'
        ]
        assert math.isnan(df.loc[0, 'recency_days'])
        assert df.loc[0, 'risk_band'] == 'high'

    def test_matches_single_owner_scoring(self, engine, make_owner, make_charge, now):
        owners = [make_owner([12, 70], owner_id="a"), make_owner([200], owner_id="b")]
        charges = [make_charge(120.0, owner_id="a"), make_charge(80.0, owner_id="b")]
        df = engine.score_owners(owners, charges, now).set_index('owner_id')
        for owner in owners:
            assert df.loc[owner.id, 'churn_risk'] == pytest.approx(engine.churn_risk(owner, charges, now))

    def test_empty(self, engine, now):
        df = engine.score_owners([], [], now)
        assert df.empty
        assert 'churn_risk' in df.columns
