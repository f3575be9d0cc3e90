import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from db import ensure_all_indexes
from errors import register_error_handlers
from routers import lambda_render, pdftobrainrot, texttobrainrot, tiktok, tweettovideo, videocaptions

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_all_indexes()
        logger.info("MongoDB indexes ensured")
    except RuntimeError as e:
        logger.error("Could not ensure MongoDB indexes: %s", e)
    yield


app = FastAPI(title="Brainrot Video Tools API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# -------------------- Routers --------------------

app.include_router(pdftobrainrot.router)
app.include_router(texttobrainrot.router)
app.include_router(tiktok.router)
app.include_router(tweettovideo.router)
app.include_router(videocaptions.router)
app.include_router(lambda_render.router)


@app.get("/health")
def health():
    return {"status": "ok"}
