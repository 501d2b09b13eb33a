"""Pydantic schemas for the dashboard cards and chart."""

from datetime import date
from pydantic import BaseModel


class TrendBadge(BaseModel):
    percent: float
    value: float
    is_up: bool


class SummaryCard(BaseModel):
    key: str
    label: str
    count: int
    previous: int
    trend: TrendBadge


class DashboardSummary(BaseModel):
    leads: SummaryCard
    clients: SummaryCard
    completed: SummaryCard
    growth_rate: float


class ChartPoint(BaseModel):
    date: date
    leads: int
    clients: int


class ChartSeries(BaseModel):
    days: int
    timezone: str
    points: list[ChartPoint]
