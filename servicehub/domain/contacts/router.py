"""Contact router - FastAPI endpoints for contact operations"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...database import get_db
from ...dependencies import get_automation, get_workspace_id
from .schemas import ContactCreate, ContactResponse
from .service import ContactService

router = APIRouter(prefix="/contacts", tags=["Contacts"])


def get_contact_service(
    db: Session = Depends(get_db), automation: AutomationContext = Depends(get_automation)
) -> ContactService:
    """Dependency injection for ContactService"""
    return ContactService(db, automation)


@router.get("", response_model=list[ContactResponse])
async def get_contacts(
    workspace_id: str = Depends(get_workspace_id),
    service: ContactService = Depends(get_contact_service),
):
    return service.get_contacts(workspace_id)


@router.post("", response_model=ContactResponse, status_code=201)
async def create_contact(
    data: ContactCreate,
    workspace_id: str = Depends(get_workspace_id),
    service: ContactService = Depends(get_contact_service),
):
    """Create a contact; a welcome message is sent on every channel the contact has"""
    return service.create_contact(workspace_id, data)
