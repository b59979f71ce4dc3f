from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from auth_dependency import get_current_user
from config import get_settings
from routers.auth_router import router as auth_router
from routers.dashboard_router import router as dashboard_router
from routers.quotes_router import router as quotes_router
from routers.strategies_router import router as strategies_router
from routers.trades_router import router as trades_router

import logging

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger("main")

logger.info(f"Quote provider: {settings.quote_provider}")
if not settings.has_real_quote_key:
    logger.warning("QUOTE_API_KEY is not set; quote lookups need an X-Quote-Api-Key header")

app = FastAPI(
    title="Trade Checklist Journal API",
    description="Strategy checklists, trade journal and live P&L, protected by AWS Cognito"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:5174",
        settings.frontend_url,
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(strategies_router)
app.include_router(trades_router)
app.include_router(quotes_router)
app.include_router(dashboard_router)


# ─── Health & Auth ────────────────────────────────────────────────────────────

@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/me")
async def get_current_user_info(current_user: dict = Depends(get_current_user)):
    return {
        "user_id": current_user["user_id"],
        "email": current_user["email"],
        "username": current_user["username"],
    }
