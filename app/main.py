import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.db import engine, Base

from app.models.customer import Customer
from app.models.stamp_ledger import StampLedger
from app.models.reward_event import RewardEvent
from app.models.automated_notification import AutomatedNotificationRule
from app.models.notification import Notification

from app.routes.scans import router as scans_router
from app.routes.rewards import router as rewards_router
from app.routes.customers import router as customers_router
from app.routes.admin import router as admin_router
from app.routes.notifications import router as notifications_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Cafe Stamps")

# ─── CORS ─────────────────────────────────────────────────────────
_default_origins = "http://localhost:5173,https://localhost:5173,http://127.0.0.1:5173"
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", _default_origins).split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)


app.include_router(scans_router)
app.include_router(rewards_router)
app.include_router(customers_router)
app.include_router(admin_router)
app.include_router(notifications_router)


@app.get("/")
def read_root():
    return {"message": "Cafe Stamps is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8001, reload=True)
