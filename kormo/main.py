import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from kormo.config import get_settings
from kormo.core.redis import close_redis
from kormo.errors import register_exception_handlers
from kormo.routers import ai, applications

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        yield
    finally:
        await close_redis()


app = FastAPI(title="Kormo Connect API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    max_age=86400,
)

register_exception_handlers(app)

app.include_router(ai.router)
app.include_router(applications.router)


@app.get("/")
def root():
    return {"message": "Kormo Connect API", "docs": "/docs"}
