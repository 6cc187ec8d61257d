# fleet_induction/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from datetime import datetime
import logging

from fleet_induction.api import allocation, ingestion, monitor, schedule
from fleet_induction.config import settings

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Fleet Induction Planner",
    description="Nightly role scheduling and stabling bay allocation for metro trains",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(GZipMiddleware, minimum_size=1024)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(schedule.router, prefix="/api/schedule", tags=["Scheduling"])
app.include_router(allocation.router, prefix="/api/allocation", tags=["Bay Allocation"])
app.include_router(ingestion.router, prefix="/api/ingestion", tags=["Data Ingestion"])
app.include_router(monitor.router, prefix="/api/monitor", tags=["Real-time Monitor"])


@app.on_event("startup")
async def startup_event():
    logger.info(f"Fleet Induction Planner starting (monitor interval {settings.monitor_interval_seconds}s)")


@app.on_event("shutdown")
async def shutdown_event():
    await monitor.shutdown_monitor()
    logger.info("Fleet Induction Planner stopped")


@app.get("/")
async def root():
    return {
        "message": "Fleet Induction Planner API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    active = monitor.get_monitor()
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "monitor_running": bool(active and active.is_running),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("fleet_induction.main:app", host=settings.api_host, port=settings.api_port, reload=False)
