"""
Flow classification against return-period thresholds.

A flow is compared to the 2/5/10/25/50/100-year return-period flows of its
reach. Each threshold it reaches moves it up one category:

    flow <   2-yr  -> Low
    flow <   5-yr  -> Normal
    flow <  10-yr  -> Moderate
    flow <  25-yr  -> Elevated
    flow <  50-yr  -> High
    flow < 100-yr  -> Very High
    otherwise      -> Extreme

A missing (or zero) threshold never triggers. Without return periods the
category is Unknown.

Alerts fire for safety categories (High and above), for user activity
thresholds the flow falls outside of, and for demonstration runs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel

from rivr_offline.schemas import AlertPriority, FlowCategory, FlowUnit, ReturnPeriod

_CATEGORY_ORDER: list[tuple[int, FlowCategory]] = [
    (2, FlowCategory.LOW),
    (5, FlowCategory.NORMAL),
    (10, FlowCategory.MODERATE),
    (25, FlowCategory.ELEVATED),
    (50, FlowCategory.HIGH),
    (100, FlowCategory.VERY_HIGH),
]

SAFETY_CATEGORIES = frozenset({FlowCategory.HIGH, FlowCategory.VERY_HIGH, FlowCategory.EXTREME})

CATEGORY_COLORS: dict[FlowCategory, str] = {
    FlowCategory.LOW: "#90CAF9",
    FlowCategory.NORMAL: "#4CAF50",
    FlowCategory.MODERATE: "#FFEB3B",
    FlowCategory.ELEVATED: "#FF9800",
    FlowCategory.HIGH: "#FF5722",
    FlowCategory.VERY_HIGH: "#F44336",
    FlowCategory.EXTREME: "#9C27B0",
}
UNKNOWN_COLOR = "#9E9E9E"

CATEGORY_DESCRIPTIONS: dict[FlowCategory, str] = {
    FlowCategory.LOW: "Shallow waters and potentially exposed obstacles.",
    FlowCategory.NORMAL: "Ideal conditions for most river activities.",
    FlowCategory.MODERATE: "Slightly faster current with good visibility.",
    FlowCategory.ELEVATED: "Strong current with potential for submerged hazards.",
    FlowCategory.HIGH: "Powerful water flow with difficult navigation conditions.",
    FlowCategory.VERY_HIGH: "Rapid currents with significant danger of capsizing.",
    FlowCategory.EXTREME: "Severe flooding with destructive potential.",
}
UNKNOWN_DESCRIPTION = "Flow information unavailable."


class RiskLevel(StrEnum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class UserThreshold(BaseModel):
    """A user's acceptable flow range for an activity (kayaking, fishing, ...)."""

    id: str
    reach_id: str
    user_id: str
    activity_type: str
    min_flow: float | None = None
    max_flow: float | None = None
    unit: FlowUnit = FlowUnit.CFS
    enabled: bool = True

    def is_outside(self, flow: float, unit: FlowUnit) -> bool:
        """True when ``flow`` falls outside this threshold's range."""
        value = unit.convert(flow, self.unit)
        above_min = value >= self.min_flow if self.min_flow else True
        below_max = value <= self.max_flow if self.max_flow else True
        return not (above_min and below_max)


@dataclass
class FlowClassification:
    category: FlowCategory
    priority: AlertPriority
    flow: float
    unit: FlowUnit
    return_period_year: int | None
    risk_level: RiskLevel
    description: str
    color: str
    should_alert: bool
    alert_message: str | None = None


def _comparable(flow: float, unit: FlowUnit, return_period: ReturnPeriod) -> float:
    return unit.convert(flow, return_period.unit)


def flow_category(flow: float, return_period: ReturnPeriod | None, unit: FlowUnit = FlowUnit.CFS) -> FlowCategory:
    if return_period is None:
        return FlowCategory.UNKNOWN
    value = _comparable(flow, unit, return_period)
    for year, category in _CATEGORY_ORDER:
        if value < (return_period.flow_values.get(year) or math.inf):
            return category
    return FlowCategory.EXTREME


def closest_return_period_year(
    flow: float, return_period: ReturnPeriod | None, unit: FlowUnit = FlowUnit.CFS
) -> int | None:
    """The standard year whose threshold flow is nearest ``flow``."""
    if return_period is None:
        return None
    value = _comparable(flow, unit, return_period)
    closest: int | None = None
    best = math.inf
    for year in ReturnPeriod.STANDARD_YEARS:
        threshold = return_period.flow_values.get(year)
        if threshold is None:
            continue
        diff = abs(threshold - value)
        if diff < best:
            best, closest = diff, year
    return closest


def alert_priority(category: FlowCategory) -> AlertPriority:
    return AlertPriority.SAFETY if category in SAFETY_CATEGORIES else AlertPriority.INFORMATION


def risk_level(category: FlowCategory) -> RiskLevel:
    if category in (FlowCategory.MODERATE, FlowCategory.ELEVATED):
        return RiskLevel.MODERATE
    if category is FlowCategory.HIGH:
        return RiskLevel.HIGH
    if category in (FlowCategory.VERY_HIGH, FlowCategory.EXTREME):
        return RiskLevel.CRITICAL
    return RiskLevel.LOW


def category_color(category: FlowCategory) -> str:
    return CATEGORY_COLORS.get(category, UNKNOWN_COLOR)


def category_description(category: FlowCategory) -> str:
    return CATEGORY_DESCRIPTIONS.get(category, UNKNOWN_DESCRIPTION)


def alert_message(
    category: FlowCategory, priority: AlertPriority, flow: float, unit: FlowUnit, reach_name: str | None = None
) -> str:
    location = reach_name or "Selected location"
    flow_text = f"{flow:.1f} {unit.value}"
    if priority is AlertPriority.SAFETY:
        return f"{location}: {category} flow conditions ({flow_text}). Exercise extreme caution."
    if priority is AlertPriority.DEMONSTRATION:
        return f"Demo: {location} showing {category} conditions ({flow_text})."
    if priority is AlertPriority.ACTIVITY:
        return f"{location}: flow is outside your preferred range ({flow_text})."
    return f"{location}: {category} flow conditions ({flow_text})."


def classify(
    flow: float,
    return_period: ReturnPeriod | None,
    unit: FlowUnit = FlowUnit.CFS,
    *,
    user_thresholds: list[UserThreshold] | None = None,
    reach_name: str | None = None,
    demo: bool = False,
) -> FlowClassification:
    """Classify a flow and decide whether it warrants an alert."""
    category = flow_category(flow, return_period, unit)
    priority = alert_priority(category)

    exceeded = [t for t in user_thresholds or [] if t.enabled and t.is_outside(flow, unit)]
    if exceeded:
        priority = AlertPriority.ACTIVITY
    if demo:
        priority = AlertPriority.DEMONSTRATION

    should_alert = priority in (AlertPriority.SAFETY, AlertPriority.DEMONSTRATION) or bool(exceeded)
    return FlowClassification(
        category=category,
        priority=priority,
        flow=flow,
        unit=unit,
        return_period_year=closest_return_period_year(flow, return_period, unit),
        risk_level=risk_level(category),
        description=category_description(category),
        color=category_color(category),
        should_alert=should_alert,
        alert_message=alert_message(category, priority, flow, unit, reach_name) if should_alert else None,
    )
