from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class CheckCreate(BaseModel):
    start_uri: str = Field(..., min_length=1, description="Container to start walking from")
    max_concurrent: Optional[int] = Field(None, ge=1, description="Maximum parallel repository requests")


class MatchOut(BaseModel):
    pass_uri: str
    pass_type: str
    query_url: str
    hit_count: int
    matching_uris: List[str]


class CheckReportOut(BaseModel):
    start_uri: str
    accepted: int
    checked: int
    skipped: int
    duplicates: List[MatchOut]
    errors: List[str]
    events: Dict[str, int]


class CheckOut(BaseModel):
    id: str
    start_uri: str
    status: str = Field(..., description="pending | running | complete | failed")
    created_at: str
    finished_at: Optional[str] = None
    report: Optional[CheckReportOut] = None
    error: Optional[str] = None
