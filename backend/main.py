"""
1inch Route Inspector API
FastAPI backend combining 1inch route breakdown, Foundry fork simulation
and Etherscan-based router security scoring
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse
from contextlib import asynccontextmanager
import logging
import os

from config.settings import FRONTEND_DIR, LOG_LEVEL, PORT, PRODUCTION
from api.inspector_router import router as inspector_router
from api.metrics_router import router as metrics_router
from services.pipeline import close_pipeline

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("Inspector")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_pipeline()
    logger.info("HTTP clients closed")


app = FastAPI(
    title="1inch Route Inspector API",
    description="Swap route breakdown, fork-simulated slippage and router risk scoring",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(inspector_router)
app.include_router(metrics_router)

# CORS - allow-list in production
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if PRODUCTION else ["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# ============================================
# STATIC FILES - Frontend
# ============================================

if os.path.isdir(FRONTEND_DIR):
    app.mount("/static", StaticFiles(directory=FRONTEND_DIR), name="static")


@app.get("/")
async def serve_index():
    """Serve the frontend, or a pointer to the API when it isn't bundled"""
    index = os.path.join(FRONTEND_DIR, "index.html")
    if os.path.isfile(index):
        return FileResponse(index)
    return {"service": "1inch-route-inspector", "docs": "/docs", "testPipeline": "/api/test-pipeline"}


# ============================================
# RUN
# ============================================

if __name__ == "__main__":
    import uvicorn
    logger.info(f"1inch Route Inspector running on port {PORT}")
    logger.info(f"Test pipeline: GET http://localhost:{PORT}/api/test-pipeline")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
