# localpress/routers/ads.py

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session, select

from localpress.db.session import get_session
from localpress.db.models import PageView
from localpress.schemas import PageViewIn, PageViewUpdate, AdImpressionIn, AdClickIn
from localpress.services import ads as ad_service
from localpress.utils.auth import get_current_user_id
from localpress.utils.content import detect_device_type, classify_traffic_source

router = APIRouter()


# ------------------------------
# Slot resolution
# ------------------------------
@router.get("/ads/{slot}")
def get_slot(slot: str, session: Session = Depends(get_session)):
    return ad_service.resolve_slot(session, slot).as_dict()


# ------------------------------
# Analytics ingestion
# ------------------------------
@router.post("/analytics/ad-impression", status_code=201)
def ad_impression(body: AdImpressionIn, request: Request, session: Session = Depends(get_session)):
    fields = body.model_dump()
    fields["device_type"] = body.device_type or detect_device_type(request.headers.get("user-agent"))
    fields["user_id"] = get_current_user_id(request)
    row = ad_service.record_impression(session, **fields)
    return {"id": row.id}


@router.post("/analytics/ad-click", status_code=201)
def ad_click(body: AdClickIn, request: Request, session: Session = Depends(get_session)):
    fields = body.model_dump()
    fields["device_type"] = body.device_type or detect_device_type(request.headers.get("user-agent"))
    fields["user_id"] = get_current_user_id(request)
    row = ad_service.record_click(session, **fields)
    return {"id": row.id}


@router.post("/analytics/page-view", status_code=201)
def page_view(body: PageViewIn, request: Request, session: Session = Depends(get_session)):
    user_agent = request.headers.get("user-agent")
    fields = body.model_dump()
    fields["device_type"] = body.device_type or detect_device_type(user_agent)
    fields["traffic_source"] = classify_traffic_source(body.referrer_url, request.url.hostname)
    fields["user_agent"] = user_agent
    fields["user_id"] = get_current_user_id(request)

    row = PageView(**fields)
    session.add(row)
    session.commit()
    session.refresh(row)
    return {"id": row.id}


@router.patch("/analytics/page-view")
def update_page_view(body: PageViewUpdate, session: Session = Depends(get_session)):
    query = select(PageView).where(PageView.session_id == body.session_id)
    if body.article_id is None:
        query = query.where(PageView.article_id.is_(None))
    else:
        query = query.where(PageView.article_id == body.article_id)
    row = session.exec(query.order_by(PageView.viewed_at.desc(), PageView.id.desc()).limit(1)).first()
    if not row:
        raise HTTPException(status_code=404, detail="page view not found")

    row.time_spent_seconds = body.time_spent_seconds
    row.scroll_depth_percent = body.scroll_depth_percent
    row.max_scroll_depth = body.max_scroll_depth
    row.completed_article = body.completed_article
    row.exit_page = True
    session.add(row)
    session.commit()
    return {"ok": True, "id": row.id}
