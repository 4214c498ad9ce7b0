import asyncio
from contextlib import asynccontextmanager
from logging import getLogger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trafficfines import seed
from trafficfines.src import cleaner, getters, schemas
from trafficfines.src.constants import (
    API_TITLE,
    API_VERSION,
    CLEANER_INTERVAL,
    SEED_ON_STARTUP,
    SEED_SAMPLE_DATA,
)
from trafficfines.api.controller import app_admin, app_user, app_public

logger = getLogger("uvicorn.error")


async def runCleaner():
    while True:
        await asyncio.sleep(CLEANER_INTERVAL)
        cleaner.main(getters.resetOTP)


@asynccontextmanager
async def lifespan(app: FastAPI):
    seed.createTables()
    if SEED_ON_STARTUP:
        seed.initDB()
        if SEED_SAMPLE_DATA:
            seed.testDB()
    logger.info("Database ready")
    cleanerTask = asyncio.create_task(runCleaner())
    try:
        yield
    finally:
        cleanerTask.cancel()


app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)

origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/admin", app_admin, "Admin API")
app.mount("/user", app_user, "User API")
app.mount("/public", app_public, "Public API")


# Health check endpoint
@app.get("/health", tags=["Health Check"], response_model=schemas.HealthStatus)
async def health_check():
    return {"status": "OK", "version": API_VERSION}
