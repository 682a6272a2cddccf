"""VelocityEngine — look-back window velocity over stored score history.

Reads snapshots through IRiskScoreHistoryRepository and delegates the math
to velocity.calculator. Batch calculation issues exactly one repository read
for any number of risks and groups the result in memory.
"""

from collections import defaultdict
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from airm_risk_engine.core.domain import RiskScoreSnapshot, RiskVelocity
from airm_risk_engine.core.interfaces import IRiskScoreHistoryRepository
from airm_risk_engine.database import utcnow
from airm_risk_engine.errors import InvalidInputError
from airm_risk_engine.observability import get_logger
from airm_risk_engine.velocity.calculator import DEFAULT_TREND_THRESHOLD, calculate_risk_velocity

logger = get_logger(__name__)

DEFAULT_PERIOD_DAYS = 10


class VelocityEngine:
    """Calculates risk velocity over a trailing window of days.

    Args:
        history_repository: Source of score snapshots.
        default_period_days: Window used when a call does not pass one.
        trend_threshold: Residual points per day separating stable from
            improving/worsening.
        clock: Returns the current UTC time. Injected so windows are
            reproducible in tests.
    """

    def __init__(
        self,
        history_repository: IRiskScoreHistoryRepository,
        default_period_days: int = DEFAULT_PERIOD_DAYS,
        trend_threshold: float = DEFAULT_TREND_THRESHOLD,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._history = history_repository
        self._default_period_days = self._check_period(default_period_days)
        self._trend_threshold = trend_threshold
        self._clock = clock

    @staticmethod
    def _check_period(period_days: int) -> int:
        if isinstance(period_days, bool) or not isinstance(period_days, int) or period_days < 1:
            raise InvalidInputError(
                "period_days must be a positive integer",
                details={"period_days": period_days},
            )
        return period_days

    def _window_start(self, period_days: int | None) -> datetime:
        days = self._default_period_days if period_days is None else self._check_period(period_days)
        return self._clock() - timedelta(days=days)

    async def calculate_single_velocity(self, risk_id: str, period_days: int | None = None) -> RiskVelocity:
        """Calculate the velocity of one risk over the trailing window.

        Args:
            risk_id: The risk to calculate.
            period_days: Window length in days. Defaults to the engine default.

        Returns:
            RiskVelocity. A risk with fewer than two snapshots in the window
            is reported as stable with zero changes.

        Raises:
            InvalidInputError: If period_days is not a positive integer.
        """
        since = self._window_start(period_days)
        snapshots = await self._history.fetch_snapshots([risk_id], since)
        history = [snapshot for snapshot in snapshots if snapshot.risk_id == risk_id]
        return calculate_risk_velocity(history, self._trend_threshold)

    async def calculate_batch_velocity(
        self,
        risk_ids: Sequence[str],
        period_days: int | None = None,
    ) -> dict[str, RiskVelocity]:
        """Calculate velocities for many risks with a single history read.

        Args:
            risk_ids: Risks to calculate. Duplicates are collapsed; the first
                occurrence fixes the output order.
            period_days: Window length in days. Defaults to the engine default.

        Returns:
            Mapping with exactly one entry per distinct requested id. Risks
            without enough history map to a stable velocity. An empty request
            returns an empty mapping without touching the repository.

        Raises:
            InvalidInputError: If period_days is not a positive integer.
        """
        since = self._window_start(period_days)
        if not risk_ids:
            return {}

        unique_ids = list(dict.fromkeys(risk_ids))
        snapshots = await self._history.fetch_snapshots(unique_ids, since)

        grouped: dict[str, list[RiskScoreSnapshot]] = defaultdict(list)
        for snapshot in snapshots:
            grouped[snapshot.risk_id].append(snapshot)

        velocities = {
            risk_id: calculate_risk_velocity(grouped.get(risk_id, []), self._trend_threshold)
            for risk_id in unique_ids
        }

        logger.info(
            "Batch velocity calculated",
            risk_count=len(unique_ids),
            snapshot_count=len(snapshots),
            since=since.isoformat(),
        )
        return velocities
