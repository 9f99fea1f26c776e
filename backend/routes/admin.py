"""
Fieldforce - Routes Admin
Dashboard KPIs, MR performance ranking and report exports. Admin only.
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Depends

from routes.auth import require_admin
from services import api_response
from services.permissions import Identity
from services.reports import REPORT_TYPES, build_report, dashboard, mr_performance

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/dashboard")
async def get_dashboard(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    user: Identity = Depends(require_admin),
):
    data = await dashboard(startDate, endDate)
    return api_response.success(data, "Dashboard data retrieved successfully")


@router.get("/mr-performance")
async def get_mr_performance(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    user: Identity = Depends(require_admin),
):
    if page < 1 or limit < 1 or limit > 100:
        raise HTTPException(status_code=400, detail="Invalid pagination parameters")
    data = await mr_performance(startDate, endDate, page, limit)
    return api_response.success(data, "MR performance retrieved successfully")


@router.get("/reports")
async def get_reports(
    reportType: str = "summary",
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    mrId: Optional[str] = None,
    territory: Optional[str] = None,
    region: Optional[str] = None,
    user: Identity = Depends(require_admin),
):
    if reportType not in REPORT_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid report type. Valid: {REPORT_TYPES}")
    data = await build_report(reportType, startDate, endDate, mrId, territory, region)
    return api_response.success(data, "Report generated successfully")
