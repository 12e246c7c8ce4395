from fastapi import APIRouter, Depends
from sqlmodel import Session, text
from datetime import datetime

from app.config import settings
from app.database import get_session

router = APIRouter()

@router.get("/check")
def health_check(session: Session = Depends(get_session)):
    db_status = "ok"

    try:
        # simple DB ping
        session.exec(text("SELECT 1"))
    except Exception:
        db_status = "failed"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "database": db_status,
        "gateway": settings.PAYMENT_GATEWAY,
        "push": "configured" if settings.fcm_configured else "disabled",
        "timestamp": datetime.utcnow().isoformat()
    }
