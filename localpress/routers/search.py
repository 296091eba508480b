# localpress/routers/search.py

from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from localpress.db.session import get_session
from localpress.services import search as search_service

router = APIRouter()


@router.get("/search")
def search(q: Optional[str] = None, session: Session = Depends(get_session)):
    return search_service.search(session, q)


@router.get("/search-suggestions")
def search_suggestions(q: Optional[str] = None, session: Session = Depends(get_session)):
    return {"suggestions": search_service.suggestions(session, q)}
