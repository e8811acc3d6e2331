import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .database import Base, engine
from .routes.assumptions import router as assumptions_router
from .routes.blocks import router as blocks_router
from .routes.canvas import router as canvas_router
from .routes.experiments import router as experiments_router
from .routes.risk import router as risk_router
from .routes.segments import router as segments_router
from .routes.viability import router as viability_router


# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    print("Starting RocketMap canvas API")
    Base.metadata.create_all(bind=engine)
    print(f"   OpenAI Key:  {' Configured' if os.getenv('OPENAI_API_KEY') else ' Not set (AI endpoints will fail)'}")
    print(f"   Model:       {os.getenv('OPENAI_MODEL', 'gpt-4.1')}")
    print("   Ready to map and de-risk business models!")

    yield

    print("Shutting down RocketMap canvas API")


app = FastAPI(
    title="RocketMap — Business Model Canvas Risk & Viability API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(canvas_router)
app.include_router(blocks_router)
app.include_router(segments_router)
app.include_router(assumptions_router)
app.include_router(experiments_router)
app.include_router(risk_router)
app.include_router(viability_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "RocketMap",
        "version": "0.1.0",
        "description": "Business model canvas risk heatmap and viability scoring",
        "docs": "/docs",
        "endpoints": {
            "canvas": "POST /canvas/ - Create a canvas",
            "segments": "POST /canvas/{canvas_id}/segments/ - Create a customer segment",
            "analyze_block": "POST /canvas/{canvas_id}/blocks/{block_type}/analyze - Critique one block",
            "risk": "GET /canvas/{canvas_id}/risk-heatmap - Per-block risk metrics",
            "viability": "POST /canvas/{canvas_id}/viability - Score the canvas",
            "health": "GET /health - Service health check"
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "rocketmap",
        "version": "0.1.0"
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG", "false").lower() == "true" else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rocketmap.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "true").lower() == "true",
    )
