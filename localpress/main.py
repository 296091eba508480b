# localpress/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from sqlmodel import SQLModel

from localpress import config
from localpress.db.session import engine
from localpress.logger import configure_logging
from localpress.routers import admin, ads, articles, auth, publishing, search, site, support, users
from localpress.services.publisher import ScheduledPublisher

log = configure_logging()


# ===============================
# LIFESPAN
# ===============================
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables (based on models in localpress.db.models)
    SQLModel.metadata.create_all(engine)

    publisher = None
    if config.PUBLISH_INTERVAL_SECONDS > 0:
        publisher = ScheduledPublisher(engine, interval_seconds=config.PUBLISH_INTERVAL_SECONDS)
        publisher.start()
    else:
        log.info("PUBLISH_INTERVAL_SECONDS=0, background publisher disabled")

    yield

    if publisher:
        await publisher.stop()
    engine.dispose()


# ===============================
# FASTAPI INIT
# ===============================
app = FastAPI(title="LocalPress API", lifespan=lifespan)

# Sessions for Authlib (must be installed before routes that use oauth)
app.add_middleware(
    SessionMiddleware,
    secret_key=config.SECRET_KEY,
    session_cookie="localpress_session",
    same_site="lax",
    https_only=config.COOKIE_SECURE,
)

# CORS
allow_origins = {"http://localhost:3000", "http://127.0.0.1:3000", config.FRONTEND_URL}
app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(allow_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(articles.router, prefix="/api/articles", tags=["Articles"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(publishing.router, prefix="/api", tags=["Publishing"])
app.include_router(ads.router, prefix="/api", tags=["Ads"])
app.include_router(search.router, prefix="/api", tags=["Search"])
app.include_router(users.router, prefix="/api", tags=["Users"])
app.include_router(support.router, prefix="/api", tags=["Support"])
app.include_router(site.router, prefix="/api", tags=["Site"])


@app.get("/health")
def health():
    return {"ok": True}
