"""Form submission schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class FormSubmissionResponse(BaseModel):
    id: str
    bookingId: str
    formId: str
    formName: Optional[str] = None
    status: str
    completedAt: Optional[datetime] = None
    created_at: Optional[datetime] = None
