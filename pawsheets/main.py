# pawsheets/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pawsheets.config import get_settings
from pawsheets.errors import NotFound, UpstreamFailure, ValidationRefusal
from pawsheets.logging_config import setup_logging
from pawsheets.routes import router as api_router, viewer_router

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="PawSheets")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")
app.include_router(viewer_router)


@app.exception_handler(NotFound)
def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationRefusal)
def refusal_handler(request: Request, exc: ValidationRefusal):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(UpstreamFailure)
def upstream_handler(request: Request, exc: UpstreamFailure):
    logger.error("Upstream failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.get("/")
def root():
    return {"message": "PawSheets API", "docs": "/docs"}
