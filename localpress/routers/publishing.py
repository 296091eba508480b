# localpress/routers/publishing.py

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlmodel import Session

from localpress.db.session import get_session
from localpress.services.publisher import auto_publish_scheduled_articles

logger = logging.getLogger("localpress.publisher")

router = APIRouter()


# ------------------------------
# Cron-style trigger; no auth, publishes only what is already due
# ------------------------------
@router.get("/publish-scheduled")
def publish_scheduled(session: Session = Depends(get_session)):
    try:
        report = auto_publish_scheduled_articles(session)
    except Exception as e:
        logger.error("Error fetching scheduled articles: %s", e)
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)

    data = report.as_dict()
    if not report.results:
        data.pop("results")
    return data
