"""Sales rollups over a list of stored orders.

Everything here is a pure function of ``(orders, window, now, tz)``: no queries,
no caching. Calendar buckets (day labels, hour of day, "today") use the
restaurant's local zone from ``settings.TZ``.

Growth figures use one policy everywhere: when the comparison value is zero the
growth is reported as 0, whether or not the current value is positive.
"""
import math
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from qrdine.config import settings
from qrdine.models.core import OrderStatus
from qrdine.schemas.orders import OrderOut
from qrdine.schemas.reports import (
    AnalyticsOut, SeriesPoint, CategoryShare, TableRevenue,
    SalesReportOut, TopItem, DashboardOut,
)
from qrdine.services.pricing import _d, _money, line_total

WINDOW_DAYS = {"7d": 7, "30d": 30, "year": 365}
TOP_TABLES = 10
TOP_ITEMS = 5
RECENT_REVIEWS = 5


def _tz(tz: Optional[str]) -> ZoneInfo:
    return ZoneInfo(tz or settings.TZ)

def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)

def _revenue(orders: Iterable[OrderOut]) -> Decimal:
    return sum((_d(o.total) for o in orders), Decimal(0))

def _short_date(d) -> str:
    return f"{d.strftime('%b')} {d.day}"


def growth_percent(current, previous) -> int:
    prev = _d(previous)
    if prev == 0:
        return 0
    pct = (_d(current) - prev) / prev * 100
    return math.floor(pct + Decimal("0.5"))


def in_window(orders: Iterable[OrderOut], window: str, now: Optional[datetime] = None) -> list[OrderOut]:
    start = _now(now) - timedelta(days=WINDOW_DAYS[window])
    return [o for o in orders if o.created_at >= start]


def summarize(
    orders: list[OrderOut],
    window: str = "7d",
    now: Optional[datetime] = None,
    tz: Optional[str] = None,
) -> AnalyticsOut:
    now = _now(now)
    zone = _tz(tz)
    span = timedelta(days=WINDOW_DAYS[window])
    start = now - span
    prev_start = start - span

    current = [o for o in orders if o.created_at >= start]
    previous = [o for o in orders if prev_start <= o.created_at < start]

    revenue = _revenue(current)
    count = len(current)

    series: dict = {}
    hours = [0] * 24
    categories: "OrderedDict[str, Decimal]" = OrderedDict()
    tables: dict[str, Decimal] = {}

    for o in current:
        local = o.created_at.astimezone(zone)
        key = (local.year, local.month) if window == "year" else local.date()
        point = series.setdefault(key, {"revenue": Decimal(0), "count": 0})
        point["revenue"] += _d(o.total)
        point["count"] += 1

        hours[local.hour] += 1

        for item in o.items:
            cat = item.menu_item.category_name or "Other"
            categories[cat] = categories.get(cat, Decimal(0)) + _d(line_total(item))

        if o.table_id:
            tables[o.table_id] = tables.get(o.table_id, Decimal(0)) + _d(o.total)

    daily = []
    for key in sorted(series):
        if window == "year":
            label = datetime(key[0], key[1], 1).strftime("%b %Y")
        else:
            label = _short_date(key)
        daily.append(SeriesPoint(label=label, revenue=_money(series[key]["revenue"]), count=series[key]["count"]))

    top_tables = sorted(tables.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_TABLES]

    return AnalyticsOut(
        window=window,
        total_revenue=_money(revenue),
        order_count=count,
        avg_order_value=_money(revenue / count) if count else 0.0,
        growth_percent=growth_percent(revenue, _revenue(previous)),
        daily_series=daily,
        category_breakdown=[CategoryShare(category=c, revenue=_money(v)) for c, v in categories.items()],
        table_performance=[TableRevenue(table_id=t, revenue=_money(v)) for t, v in top_tables],
        peak_hours=hours,
    )


def _in_period(order: OrderOut, period: str, now: datetime, zone: ZoneInfo) -> bool:
    local = order.created_at.astimezone(zone)
    today = now.astimezone(zone)
    if period == "today":
        return local.date() == today.date()
    if period == "week":
        return order.created_at >= now - timedelta(days=7)
    return (local.year, local.month) == (today.year, today.month)


def sales_report(
    orders: list[OrderOut],
    period: str = "today",
    now: Optional[datetime] = None,
    tz: Optional[str] = None,
) -> SalesReportOut:
    """Printable summary for today / the last seven days / this calendar month."""
    now = _now(now)
    zone = _tz(tz)
    chosen = [o for o in orders if _in_period(o, period, now, zone)]
    revenue = _revenue(chosen)

    items: "OrderedDict[str, dict]" = OrderedDict()
    for o in chosen:
        for line in o.items:
            mi = line.menu_item
            row = items.setdefault(mi.id, {"name": mi.name, "count": 0, "revenue": Decimal(0)})
            row["count"] += line.quantity
            row["revenue"] += _d(line_total(line))

    top = sorted(items.items(), key=lambda kv: -kv[1]["count"])[:TOP_ITEMS]
    return SalesReportOut(
        period=period,
        total_revenue=_money(revenue),
        total_orders=len(chosen),
        avg_order_value=_money(revenue / len(chosen)) if chosen else 0.0,
        top_items=[
            TopItem(menu_item_id=mid, name=r["name"], count=r["count"], revenue=_money(r["revenue"]))
            for mid, r in top
        ],
    )


def dashboard(
    orders: list[OrderOut],
    now: Optional[datetime] = None,
    tz: Optional[str] = None,
) -> DashboardOut:
    now = _now(now)
    zone = _tz(tz)
    today = now.astimezone(zone).date()
    days = [today - timedelta(days=6 - i) for i in range(7)]

    by_day: dict = {d: [] for d in days}
    yesterday = today - timedelta(days=1)
    for o in orders:
        d = o.created_at.astimezone(zone).date()
        if d in by_day:
            by_day[d].append(o)

    todays = by_day[today]
    yesterdays = by_day[yesterday]
    revenue = _revenue(todays)

    reviews = sorted((o for o in orders if o.feedback), key=lambda o: o.feedback.created_at, reverse=True)

    return DashboardOut(
        today_orders=len(todays),
        today_revenue=_money(revenue),
        order_growth=growth_percent(len(todays), len(yesterdays)),
        revenue_growth=growth_percent(revenue, _revenue(yesterdays)),
        pending_orders=sum(1 for o in orders if o.status == OrderStatus.PENDING.value),
        week_labels=[d.strftime("%a") for d in days],
        week_revenue=[_money(_revenue(by_day[d])) for d in days],
        week_orders=[len(by_day[d]) for d in days],
        reviews=reviews[:RECENT_REVIEWS],
        currency=settings.CURRENCY_LABEL,
    )
