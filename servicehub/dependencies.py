"""Shared FastAPI dependencies"""

import logging

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from .automation import AutomationContext
from .database import get_db
from .models import Workspace
from .shared.validators import validate_uuid

logger = logging.getLogger(__name__)


def get_workspace_id(
    x_workspace_id: str = Header(..., alias="X-Workspace-Id"),
    db: Session = Depends(get_db),
) -> str:
    """Resolve the tenant from the X-Workspace-Id header"""
    if not validate_uuid(x_workspace_id):
        raise HTTPException(status_code=400, detail="Invalid workspace id")
    return require_active_workspace(db, x_workspace_id)


def require_active_workspace(db: Session, workspace_id: str) -> str:
    workspace = db.query(Workspace).filter(Workspace.id == workspace_id).first()
    if not workspace or not workspace.is_active:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return workspace.id


def get_automation(request: Request) -> AutomationContext:
    return request.app.state.automation
