# main.py (reviewbridge package)
import uvicorn
from fastapi import FastAPI
from reviewbridge.config import get_settings
from reviewbridge.logging_config import configure_structlog
from reviewbridge.routers.auth_router import router as auth_router
from reviewbridge.routers.user_router import router as user_router
from reviewbridge.routers.platforms_router import router as platforms_router
from reviewbridge.routers.reviews_router import router as reviews_router
from reviewbridge.infrastructure.database import init_db
from reviewbridge.middleware.logging import RequestIdMiddleware
import structlog

configure_structlog()
logger = structlog.get_logger()

app = FastAPI(title="ReviewBridge")

app.add_middleware(RequestIdMiddleware)

app.include_router(auth_router)
app.include_router(user_router)
app.include_router(platforms_router)
app.include_router(reviews_router)

@app.on_event("startup")
async def on_startup():
    await init_db()
    settings = get_settings()
    logger.info(
        "app_startup",
        environment=settings.ENVIRONMENT,
        google_configured=bool(settings.GOOGLE_CLIENT_ID),
        facebook_configured=bool(settings.FACEBOOK_APP_ID),
    )

@app.get("/health")
async def health():
    return {"ok": True}

def run():
    import os
    uvicorn.run("reviewbridge.main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=get_settings().is_development)

if __name__ == "__main__":
    run()
