"""Dashboard API: summary cards and the lead/client chart."""

from fastapi import APIRouter, Depends, Query

from devflow.application.services.dashboard_service import DashboardAggregator
from devflow.core.notices import respond
from devflow.domain.repositories.gateway import DataGateway
from devflow.domain.schemas.auth import AuthSession
from devflow.interfaces.api.deps import get_current_session
from devflow.interfaces.deps import get_gateway

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


def get_aggregator(
    session: AuthSession = Depends(get_current_session),
    gateway: DataGateway = Depends(get_gateway),
) -> DashboardAggregator:
    return DashboardAggregator(gateway, session)


@router.get("/summary")
def dashboard_summary(aggregator: DashboardAggregator = Depends(get_aggregator)):
    """Lead, Client and Completed counts with week-over-week trends."""
    return respond(aggregator.summary())


@router.get("/chart")
def dashboard_chart(
    days: int = Query(90, description="Trailing window: 7, 30 or 90 days"),
    aggregator: DashboardAggregator = Depends(get_aggregator),
):
    return respond(aggregator.chart(days))
