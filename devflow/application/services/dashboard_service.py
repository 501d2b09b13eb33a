"""Dashboard service: summary cards with week-over-week trends and the lead/client area chart."""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional

import pytz
import structlog
from pydantic import TypeAdapter

from devflow.config import get_settings
from devflow.core.exceptions import RemoteOperationFailed, ValidationFailed
from devflow.core.notices import Outcome
from devflow.domain.repositories.gateway import Collection, DataGateway, Query
from devflow.domain.roles import Permissions
from devflow.domain.schemas.auth import AuthSession
from devflow.domain.schemas.dashboard import (
    ChartPoint,
    ChartSeries,
    DashboardSummary,
    SummaryCard,
    TrendBadge,
)
from devflow.domain.schemas.project import ProjectStatus

logger = structlog.get_logger(__name__)
settings = get_settings()

CHART_WINDOWS = (7, 30, 90)
TREND_WINDOW = timedelta(days=7)
GROWTH_RATE_PLACEHOLDER = 4.5

# Rows from the REST gateway carry ISO strings, the SQL gateway datetimes
TIMESTAMP = TypeAdapter(datetime)

CARD_LABELS = {
    # key: (sales label, everyone else)
    "leads": ("My Leads", "Total Leads"),
    "clients": ("My Clients", "Total Clients"),
    "completed": ("My Completed Projects", "Completed Projects"),
}

CARD_STATUS = {
    "leads": ProjectStatus.LEAD,
    "clients": ProjectStatus.CLIENT,
    "completed": ProjectStatus.COMPLETED,
}


def trend_percent(current: int, previous: int) -> float:
    """Percent change rounded half-up to one decimal, 0 when there is no baseline."""
    if previous <= 0:
        return 0
    return math.floor(((current - previous) / previous) * 100 * 10 + 0.5) / 10


def trend_badge(current: int, previous: int) -> TrendBadge:
    percent = trend_percent(current, previous)
    return TrendBadge(percent=percent, value=abs(percent), is_up=percent >= 0)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DashboardAggregator:
    def __init__(
        self,
        gateway: DataGateway,
        session: AuthSession,
        tz_name: Optional[str] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.gateway = gateway
        self.session = session
        self.permissions = Permissions(session.role)
        self.tz_name = tz_name or settings.TIMEZONE
        self.tz = pytz.timezone(self.tz_name)
        self.clock = clock

    def _scoped(self, query: Query) -> Query:
        if self.permissions.is_sales and self.session.user:
            query.eq("sale_id", self.session.user.id)
        return query

    def _count(self, query: Query) -> int:
        result = self.gateway.select(Collection.PROJECTS, self._scoped(query), columns=["id"])
        return len(result.raise_for_error().data)

    def summary(self) -> Outcome[DashboardSummary]:
        """Count Lead, Client and Completed projects and their trend against a week ago."""
        now = self.clock()
        cutoff = now - TREND_WINDOW
        label_index = 0 if self.permissions.is_sales else 1

        cards = {}
        try:
            for key, status in CARD_STATUS.items():
                current = self._count(Query().eq("status", status.value))
                previous = self._count(Query().eq("status", status.value).lt("created_at", cutoff))
                cards[key] = SummaryCard(
                    key=key,
                    label=CARD_LABELS[key][label_index],
                    count=current,
                    previous=previous,
                    trend=trend_badge(current, previous),
                )
        except RemoteOperationFailed as e:
            logger.error("Error fetching stats", error=e.message)
            return Outcome.failure(e, "Failed to load dashboard statistics")

        return Outcome.success(
            DashboardSummary(
                leads=cards["leads"],
                clients=cards["clients"],
                completed=cards["completed"],
                growth_rate=0 if self.permissions.is_sales else GROWTH_RATE_PLACEHOLDER,
            )
        )

    def window(self, days: int) -> List[date]:
        """Calendar days of the trailing window in the viewer's timezone, oldest first."""
        today = self.clock().astimezone(self.tz).date()
        return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]

    def chart(self, days: int) -> Outcome[ChartSeries]:
        if days not in CHART_WINDOWS:
            return Outcome.failure(
                ValidationFailed(f"Chart range must be one of {list(CHART_WINDOWS)} days", {"days": days})
            )

        buckets = self.window(days)
        start = self.tz.localize(datetime.combine(buckets[0], time.min))
        query = Query().in_("status", [ProjectStatus.LEAD.value, ProjectStatus.CLIENT.value])
        query.gte("created_at", start)
        try:
            result = self.gateway.select(
                Collection.PROJECTS, self._scoped(query), columns=["status", "created_at"]
            ).raise_for_error()
        except RemoteOperationFailed as e:
            logger.error("Error fetching chart data", days=days, error=e.message)
            return Outcome.failure(e, "Failed to load chart data")

        counts = {day: {"leads": 0, "clients": 0} for day in buckets}
        for row in result.data:
            created = row.get("created_at")
            if created is None:
                continue
            created = TIMESTAMP.validate_python(created)
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            day = created.astimezone(self.tz).date()
            if day not in counts:
                continue
            key = "leads" if row.get("status") == ProjectStatus.LEAD.value else "clients"
            counts[day][key] += 1

        points = [ChartPoint(date=day, **counts[day]) for day in buckets]
        return Outcome.success(ChartSeries(days=days, timezone=self.tz_name, points=points))
