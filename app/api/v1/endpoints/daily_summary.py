from typing import Optional

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_daily_summary_job
from app.core.timeutils import local_today
from app.schemas.notification import DailySummaryRequest, DailySummaryResponse, DailySummaryResult
from app.services.daily_summary import DailySummaryJob

router = APIRouter()

@router.post("", response_model=DailySummaryResponse)
async def send_daily_summaries(
    request: Optional[DailySummaryRequest] = Body(None),
    job: DailySummaryJob = Depends(get_daily_summary_job),
):
    """
    Cron entry point: sends the end-of-day digest to every owner who opted in.
    """
    day = (request.date if request else None) or local_today(job.clock()).isoformat()
    outcomes = await job.run(day)
    return DailySummaryResponse(
        message=f"Daily summaries processed for {len(outcomes)} owners",
        date=day,
        results=[DailySummaryResult(**outcome.model_dump()) for outcome in outcomes],
    )
