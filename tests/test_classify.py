"""Tests for flow classification and alert decisions."""

from __future__ import annotations

import pytest

from rivr_offline.classify import (
    UNKNOWN_COLOR,
    RiskLevel,
    UserThreshold,
    classify,
    closest_return_period_year,
    flow_category,
)
from rivr_offline.schemas import AlertPriority, FlowCategory, FlowUnit, ReturnPeriod


@pytest.fixture
def periods() -> ReturnPeriod:
    return ReturnPeriod(
        reach_id="123",
        flow_values={2: 100, 5: 200, 10: 300, 25: 400, 50: 500, 100: 600},
        unit=FlowUnit.CFS,
    )


def _threshold(**kwargs: object) -> UserThreshold:
    base: dict[str, object] = {"id": "t1", "reach_id": "123", "user_id": "u1", "activity_type": "kayaking"}
    return UserThreshold(**{**base, **kwargs})


class TestFlowCategory:
    @pytest.mark.parametrize(
        ("flow", "expected"),
        [
            (50, FlowCategory.LOW),
            (100, FlowCategory.NORMAL),
            (250, FlowCategory.MODERATE),
            (350, FlowCategory.ELEVATED),
            (450, FlowCategory.HIGH),
            (550, FlowCategory.VERY_HIGH),
            (600, FlowCategory.EXTREME),
        ],
    )
    def test_thresholds(self, periods: ReturnPeriod, flow: float, expected: FlowCategory) -> None:
        assert flow_category(flow, periods, FlowUnit.CFS) is expected

    def test_no_return_periods(self) -> None:
        assert flow_category(100, None) is FlowCategory.UNKNOWN

    def test_missing_or_zero_threshold_never_triggers(self) -> None:
        periods = ReturnPeriod(reach_id="1", flow_values={2: 100, 5: 0}, unit=FlowUnit.CFS)
        assert flow_category(10_000, periods, FlowUnit.CFS) is FlowCategory.NORMAL

    def test_converts_units(self) -> None:
        # 2-year flow of 10 m³/s is about 353 ft³/s
        periods = ReturnPeriod(reach_id="1", flow_values={2: 10.0, 5: 20.0}, unit=FlowUnit.CMS)
        assert flow_category(300, periods, FlowUnit.CFS) is FlowCategory.LOW
        assert flow_category(400, periods, FlowUnit.CFS) is FlowCategory.NORMAL


class TestClosestYear:
    def test_closest(self, periods: ReturnPeriod) -> None:
        assert closest_return_period_year(290, periods) == 10

    def test_none(self) -> None:
        assert closest_return_period_year(290, None) is None


class TestUserThreshold:
    def test_inside_range(self) -> None:
        assert not _threshold(min_flow=100, max_flow=300).is_outside(200, FlowUnit.CFS)

    def test_outside_range(self) -> None:
        t = _threshold(min_flow=100, max_flow=300)
        assert t.is_outside(50, FlowUnit.CFS)
        assert t.is_outside(400, FlowUnit.CFS)

    def test_open_ended(self) -> None:
        assert not _threshold(min_flow=100).is_outside(10_000, FlowUnit.CFS)

    def test_unit_conversion(self) -> None:
        # 100 ft³/s is about 2.8 m³/s
        t = _threshold(min_flow=1, max_flow=5, unit=FlowUnit.CMS)
        assert not t.is_outside(100, FlowUnit.CFS)


class TestClassify:
    """Alert decisions."""

    def test_safety_alert(self, periods: ReturnPeriod) -> None:
        result = classify(450, periods, reach_name="Provo River")
        assert result.category is FlowCategory.HIGH
        assert result.priority is AlertPriority.SAFETY
        assert result.risk_level is RiskLevel.HIGH
        assert result.should_alert
        assert result.alert_message is not None
        assert result.alert_message.startswith("Provo River: High flow")

    def test_normal_flow_no_alert(self, periods: ReturnPeriod) -> None:
        result = classify(150, periods)
        assert result.priority is AlertPriority.INFORMATION
        assert result.risk_level is RiskLevel.LOW
        assert not result.should_alert
        assert result.alert_message is None

    def test_activity_threshold(self, periods: ReturnPeriod) -> None:
        result = classify(150, periods, user_thresholds=[_threshold(min_flow=200, max_flow=300)])
        assert result.priority is AlertPriority.ACTIVITY
        assert result.should_alert

    def test_disabled_threshold_ignored(self, periods: ReturnPeriod) -> None:
        result = classify(150, periods, user_thresholds=[_threshold(min_flow=200, enabled=False)])
        assert not result.should_alert

    def test_demo(self, periods: ReturnPeriod) -> None:
        result = classify(150, periods, demo=True)
        assert result.priority is AlertPriority.DEMONSTRATION
        assert result.should_alert
        assert result.alert_message is not None
        assert result.alert_message.startswith("Demo:")

    def test_unknown(self) -> None:
        result = classify(150, None)
        assert result.category is FlowCategory.UNKNOWN
        assert result.color == UNKNOWN_COLOR
        assert result.return_period_year is None
