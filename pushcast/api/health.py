from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from pushcast.core.errors import MissingCredentials
from pushcast.database import get_db
from pushcast.services.push_service import load_credentials

router = APIRouter(tags=["health"])


def _push_state() -> str:
    try:
        load_credentials()
    except MissingCredentials:
        return "unconfigured"
    return "configured"


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    """Database liveness plus whether broadcasts can be signed."""
    push = _push_state()
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:
        return {"status": "unhealthy", "database": "disconnected", "push": push, "error": str(exc)}
    return {"status": "healthy", "database": "connected", "push": push}
