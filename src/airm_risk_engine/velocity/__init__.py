"""Risk velocity: rate of change of risk scores over time.

The pure calculator works on histories already in memory; VelocityEngine
adds the trailing window and the single-read batch lookup.
"""

from airm_risk_engine.velocity.calculator import (
    calculate_batch_risk_velocity,
    calculate_risk_velocity,
    classify_trend,
)
from airm_risk_engine.velocity.engine import VelocityEngine

__all__ = [
    "VelocityEngine",
    "calculate_batch_risk_velocity",
    "calculate_risk_velocity",
    "classify_trend",
]
