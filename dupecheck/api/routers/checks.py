from fastapi import APIRouter, BackgroundTasks, HTTPException

from dupecheck.models.checks import CheckCreate, CheckOut
from dupecheck.services.check_service import create_check, get_check, run_check


router = APIRouter(tags=["checks"])


@router.get("/health")
def api_health():
    return {"ok": True}


@router.post("/checks", response_model=CheckOut, status_code=202)
def api_create_check(payload: CheckCreate, background_tasks: BackgroundTasks):
    record = create_check(payload.start_uri)
    background_tasks.add_task(run_check, record["id"], payload.max_concurrent)
    return record


@router.get("/checks/{check_id}", response_model=CheckOut)
def api_get_check(check_id: str):
    record = get_check(check_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Check not found")
    return record
