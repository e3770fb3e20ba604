from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import config
from backend.routers import visualize
from backend.session import viewer


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await viewer.aclose()


app = FastAPI(
    title="PointViewer API",
    description="Viewer state for address-based point-cloud reconstructions",
    version="0.1.0",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS -- allow the viewer front end
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(visualize.router)


@app.get("/")
async def root():
    return {"status": "ok", "service": "PointViewer API"}
