from fastapi import APIRouter, Depends

from app.api.deps import get_reminder_job
from app.schemas.notification import ReminderResult, ReminderRunResponse
from app.services.reminders import ReminderJob

router = APIRouter()

@router.post("", response_model=ReminderRunResponse)
async def run_reminders(job: ReminderJob = Depends(get_reminder_job)):
    """
    Cron entry point: reminds every due appointment that has not been reminded yet.
    """
    outcomes = await job.run()
    return ReminderRunResponse(
        message=f"Processed {len(outcomes)} appointments",
        total_processed=len(outcomes),
        results=[ReminderResult(**outcome.model_dump()) for outcome in outcomes],
    )
