"""Pure risk velocity math over score snapshot histories.

Velocity is the average rate of change per day between the earliest and
latest snapshot of a history. The trend is read from the residual score,
since that is the score controls act on:
- residual rate below -threshold  -> improving
- residual rate above +threshold  -> worsening
- anything in between (inclusive) -> stable

Changes are reported rounded to 2 dp; the trend is classified on the
unrounded rate.
"""

from collections.abc import Mapping, Sequence

from airm_risk_engine.core.domain import RiskScoreSnapshot, RiskVelocity, Trend
from airm_risk_engine.core.scoring import round_half_up

DEFAULT_TREND_THRESHOLD = 0.1

SECONDS_PER_DAY = 86_400


def classify_trend(residual_rate: float, threshold: float = DEFAULT_TREND_THRESHOLD) -> Trend:
    """Classify a residual rate of change. Both boundaries are stable."""
    if residual_rate < -threshold:
        return "improving"
    if residual_rate > threshold:
        return "worsening"
    return "stable"


def calculate_risk_velocity(
    history: Sequence[RiskScoreSnapshot],
    threshold: float = DEFAULT_TREND_THRESHOLD,
) -> RiskVelocity:
    """Calculate the velocity of one risk from its snapshot history.

    The input does not need to be sorted. Snapshots sharing a timestamp keep
    their input order.

    Args:
        history: Snapshots of a single risk.
        threshold: Absolute residual rate (points per day) separating a
            stable trend from an improving or worsening one.

    Returns:
        RiskVelocity. Fewer than two snapshots yield RiskVelocity.stable().
        The day span is rounded to whole days with a floor of 1, so two
        snapshots recorded minutes apart divide by one day.
    """
    if len(history) < 2:
        return RiskVelocity.stable()

    ordered = sorted(history, key=lambda snapshot: snapshot.recorded_at)
    earliest, latest = ordered[0], ordered[-1]

    span_days = (latest.recorded_at - earliest.recorded_at).total_seconds() / SECONDS_PER_DAY
    days_diff = max(1, int(round_half_up(span_days, 0)))

    inherent_rate = (latest.inherent_score - earliest.inherent_score) / days_diff
    residual_rate = (latest.residual_score - earliest.residual_score) / days_diff

    return RiskVelocity(
        inherent_change=round_half_up(inherent_rate),
        residual_change=round_half_up(residual_rate),
        trend=classify_trend(residual_rate, threshold),
        period_days=days_diff,
    )


def calculate_batch_risk_velocity(
    histories: Mapping[str, Sequence[RiskScoreSnapshot]],
    threshold: float = DEFAULT_TREND_THRESHOLD,
) -> dict[str, RiskVelocity]:
    """Calculate velocities for several already-grouped histories.

    Args:
        histories: Mapping of risk id to that risk's snapshots.
        threshold: See calculate_risk_velocity().

    Returns:
        Mapping of risk id to RiskVelocity, in the input's key order.
    """
    return {risk_id: calculate_risk_velocity(history, threshold) for risk_id, history in histories.items()}
