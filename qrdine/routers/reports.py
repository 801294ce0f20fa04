from fastapi import APIRouter, Depends, HTTPException

from qrdine.context import AppContext
from qrdine.deps import get_ctx, require_role
from qrdine.schemas.reports import (
    AnalyticsOut, SalesReportOut, DashboardOut, WindowLiteral, PeriodLiteral,
)
from qrdine.services import analytics
from qrdine.services.order_store import StoreUnavailable

router = APIRouter(prefix="/reports", tags=["reports"])


def _orders(ctx: AppContext):
    try:
        return ctx.orders.store.list_orders()
    except StoreUnavailable as e:
        raise HTTPException(503, detail=str(e))


@router.get("/analytics", response_model=AnalyticsOut)
def analytics_view(window: WindowLiteral = "7d", ctx: AppContext = Depends(get_ctx),
                   sub: str = Depends(require_role("admin"))):
    return analytics.summarize(_orders(ctx), window)


@router.get("/sales", response_model=SalesReportOut)
def sales(period: PeriodLiteral = "today", ctx: AppContext = Depends(get_ctx),
          sub: str = Depends(require_role("admin"))):
    return analytics.sales_report(_orders(ctx), period)


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(ctx: AppContext = Depends(get_ctx), sub: str = Depends(require_role("admin"))):
    return analytics.dashboard(_orders(ctx))
