# localpress/routers/site.py

from fastapi import APIRouter, HTTPException, Request

from localpress.exceptions import ConfigurationError, RelayError
from localpress.schemas import ContactBody
from localpress.services import contact, geolocation

router = APIRouter()


@router.get("/geolocation")
def get_geolocation(request: Request):
    ip = geolocation.client_ip(
        request.headers.get("x-forwarded-for"),
        request.headers.get("x-real-ip"),
        request.client.host if request.client else None,
    )
    return geolocation.lookup(ip)


@router.post("/contact")
def contact_form(body: ContactBody):
    try:
        contact.relay_contact_form(body.name, body.email, body.message, body.subject)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except RelayError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True}
