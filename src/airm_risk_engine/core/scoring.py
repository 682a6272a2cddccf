"""Deterministic risk scoring math.

Pure, side-effect-free functions on the 5x5 likelihood/impact matrix:
- calculate_inherent_score       — likelihood x impact (1-25)
- calculate_residual_score       — inherent score after control effectiveness
- calculate_overall_effectiveness — compounds independent controls
- get_risk_level                 — LOW / MEDIUM / HIGH / CRITICAL bands
- get_risk_level_color / get_matrix_cell_color — level to style token
- validate_risk_parameters       — strict integer guard for form entry

Residual and compounded results are rounded to 2 decimal places (half away
from zero) at the point of return; intermediate math keeps full precision.
Out-of-domain input raises InvalidInputError and is never clamped.
"""

from decimal import ROUND_HALF_UP, Decimal
from numbers import Real

from airm_risk_engine.core.domain import RiskLevel
from airm_risk_engine.errors import InvalidInputError

RATING_MIN = 1
RATING_MAX = 5

# Lower bound (inclusive) of each band, checked from the top down
_LEVEL_THRESHOLDS: tuple[tuple[float, RiskLevel], ...] = (
    (17, RiskLevel.CRITICAL),
    (10, RiskLevel.HIGH),
    (5, RiskLevel.MEDIUM),
)

DEFAULT_LEVEL_PALETTE: dict[RiskLevel, str] = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "orange",
    RiskLevel.CRITICAL: "red",
}

DEFAULT_MATRIX_PALETTE: dict[RiskLevel, str] = {
    RiskLevel.LOW: "matrix-green",
    RiskLevel.MEDIUM: "matrix-yellow",
    RiskLevel.HIGH: "matrix-orange",
    RiskLevel.CRITICAL: "matrix-red",
}


def round_half_up(value: float, places: int = 2) -> float:
    """Round a float to `places` decimals, halves away from zero.

    Args:
        value: The value to round.
        places: Number of decimal places.

    Returns:
        The rounded value as a float.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _check_rating(name: str, value: float) -> None:
    if not _is_number(value) or not RATING_MIN <= value <= RATING_MAX:
        raise InvalidInputError(
            "Likelihood and impact must be between 1 and 5",
            details={"field": name, "value": value},
        )


def _check_percentage(name: str, value: float) -> None:
    if not _is_number(value) or not 0 <= value <= 100:
        raise InvalidInputError(
            "Control effectiveness must be between 0 and 100",
            details={"field": name, "value": value},
        )


def calculate_inherent_score(likelihood: float, impact: float) -> float:
    """Calculate the inherent (pre-control) risk score.

    Non-integer values inside [1, 5] are accepted; use
    validate_risk_parameters() first where integers are required.

    Args:
        likelihood: Likelihood rating (1-5).
        impact: Impact rating (1-5).

    Returns:
        likelihood * impact, in the range 1-25.

    Raises:
        InvalidInputError: If either rating is outside [1, 5].
    """
    _check_rating("likelihood", likelihood)
    _check_rating("impact", impact)
    return likelihood * impact


def calculate_residual_score(inherent_score: float, effectiveness_percent: float) -> float:
    """Calculate the residual risk score after controls.

    Args:
        inherent_score: Inherent risk score.
        effectiveness_percent: Compounded control effectiveness (0-100 inclusive).

    Returns:
        inherent_score * (1 - effectiveness_percent / 100), rounded to 2 dp.

    Raises:
        InvalidInputError: If effectiveness_percent is outside [0, 100].
    """
    _check_percentage("effectiveness_percent", effectiveness_percent)
    return round_half_up(inherent_score * (1 - effectiveness_percent / 100))


def calculate_overall_effectiveness(effectiveness_list: list[float]) -> float:
    """Compound the effectiveness of independent controls.

    Controls are modelled as independent barriers, so the combined
    effectiveness is 1 - prod(1 - e_i / 100), which can never exceed 100%
    and is never lower than the strongest single control.

    Args:
        effectiveness_list: Individual control effectiveness percentages (0-100).

    Returns:
        Overall effectiveness percentage, rounded to 2 dp. 0 for an empty list,
        the value itself for a single control.

    Raises:
        InvalidInputError: If any element is outside [0, 100].
    """
    if not effectiveness_list:
        return 0
    if len(effectiveness_list) == 1:
        _check_percentage("effectiveness_list[0]", effectiveness_list[0])
        return effectiveness_list[0]

    remaining = 1.0
    for index, effectiveness in enumerate(effectiveness_list):
        _check_percentage(f"effectiveness_list[{index}]", effectiveness)
        remaining *= 1 - effectiveness / 100
    # Rounding never reports less than the strongest single control
    return max(round_half_up((1 - remaining) * 100), max(effectiveness_list))


def get_risk_level(score: float) -> RiskLevel:
    """Classify a score into a risk level.

    Bands are closed at the low end: [0,5) LOW, [5,10) MEDIUM,
    [10,17) HIGH, [17,...) CRITICAL.
    """
    for threshold, level in _LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.LOW


def get_risk_level_color(level: RiskLevel | str, palette: dict[RiskLevel, str] | None = None) -> str:
    """Map a risk level to a caller-defined style token.

    Raises:
        InvalidInputError: If level is not a known risk level.
    """
    try:
        risk_level = RiskLevel(level)
    except ValueError:
        raise InvalidInputError(
            f"Unknown risk level: {level}",
            details={"level": level, "supported": [member.value for member in RiskLevel]},
        ) from None
    return (palette or DEFAULT_LEVEL_PALETTE)[risk_level]


def get_matrix_cell_color(score: float, palette: dict[RiskLevel, str] | None = None) -> str:
    """Map a matrix cell score to a caller-defined style token."""
    return (palette or DEFAULT_MATRIX_PALETTE)[get_risk_level(score)]


def validate_risk_parameters(likelihood: float, impact: float) -> bool:
    """Strictly validate likelihood and impact for form entry.

    Args:
        likelihood: Likelihood rating, must be an integer in [1, 5].
        impact: Impact rating, must be an integer in [1, 5].

    Returns:
        True when both values are valid.

    Raises:
        InvalidInputError: If either value is not an integer in [1, 5].
    """
    for name, label, value in (("likelihood", "Likelihood", likelihood), ("impact", "Impact", impact)):
        is_integer = _is_number(value) and float(value).is_integer()
        if not is_integer or not RATING_MIN <= value <= RATING_MAX:
            raise InvalidInputError(
                f"{label} must be an integer between 1 and 5",
                details={"field": name, "value": value},
            )
    return True
