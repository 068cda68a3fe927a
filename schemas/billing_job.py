# schemas/billing_job.py
from typing import List, Optional
from pydantic import BaseModel, Field


class BatchItemError(BaseModel):
     """One member of a sweep that could not be fully processed."""
     reference: str
     error: str


class BatchJobResponse(BaseModel):
     """Outcome of a billing sweep."""
     job: str
     processed: int
     failed: int
     errors: List[BatchItemError] = Field(default_factory=list)
     run_date: Optional[str] = None
