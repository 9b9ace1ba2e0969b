# learncheck/api/submission_routes.py
from fastapi import APIRouter, Query, Request

from learncheck.difficulty import adapt, score_percentage
from learncheck.history import AttemptHistory
from learncheck.schemas import SubmissionIn, SubmissionOut

router = APIRouter(prefix="/api/submissions", tags=["Submissions"])


def get_history(request: Request) -> AttemptHistory:
    return request.app.state.history


@router.post("", status_code=201, response_model=SubmissionOut)
async def submit_attempt(request: Request, submission: SubmissionIn):
    history = get_history(request)
    record = await history.record(submission)
    percentage = score_percentage(record.score, record.total)
    records = await history.list(submission.user_id, submission.tutorial_id)
    return SubmissionOut(
        user_id=submission.user_id,
        tutorial_id=submission.tutorial_id,
        record=record,
        percentage=percentage,
        # what the next generation request will be adapted to
        next_difficulty=adapt(record.difficulty, percentage, record.attempt_number + 1),
        history_length=len(records),
    )


@router.get("/{user_id}")
async def list_attempts(request: Request, user_id: str, tutorial_id: str = Query(..., alias="tutorialId")):
    records = await get_history(request).list(user_id, tutorial_id)
    return {
        "success": True,
        "data": [r.model_dump(by_alias=True) for r in records],
        "count": len(records),
    }


@router.delete("/{user_id}/{tutorial_id}")
async def clear_attempts(request: Request, user_id: str, tutorial_id: str):
    cleared = await get_history(request).clear(user_id, tutorial_id)
    return {"success": cleared}
