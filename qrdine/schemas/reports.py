from pydantic import BaseModel
from typing import Literal, Optional

from qrdine.schemas.orders import OrderOut

WindowLiteral = Literal["7d", "30d", "year"]
PeriodLiteral = Literal["today", "week", "month"]


class SeriesPoint(BaseModel):
    label: str
    revenue: float
    count: int


class CategoryShare(BaseModel):
    category: str
    revenue: float


class TableRevenue(BaseModel):
    table_id: str
    revenue: float


class AnalyticsOut(BaseModel):
    window: WindowLiteral
    total_revenue: float
    order_count: int
    avg_order_value: float
    growth_percent: int
    daily_series: list[SeriesPoint]
    category_breakdown: list[CategoryShare]
    table_performance: list[TableRevenue]
    peak_hours: list[int]


class TopItem(BaseModel):
    menu_item_id: str
    name: str
    count: int
    revenue: float


class SalesReportOut(BaseModel):
    period: PeriodLiteral
    total_revenue: float
    total_orders: int
    avg_order_value: float
    top_items: list[TopItem]


class DashboardOut(BaseModel):
    today_orders: int
    today_revenue: float
    order_growth: int
    revenue_growth: int
    pending_orders: int
    week_labels: list[str]
    week_revenue: list[float]
    week_orders: list[int]
    reviews: list[OrderOut]
    currency: Optional[str] = None
