import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .db import init_db
from .gateway_client import GatewayError
from .settings import settings
from .routers import functions
from .routers import projects
from .routers import preparation
from .routers import preliminary
from .routers import final

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Competition Coach API")
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origins,
	allow_credentials=False,
	allow_methods=["*"],
	allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
app.include_router(functions.router)
app.include_router(projects.router)
app.include_router(preparation.router)
app.include_router(preliminary.router)
app.include_router(final.router)

# Stored files are served as <public_url>/<bucket>/<key>
STORAGE_DIR = Path(settings.storage_dir).resolve()
STORAGE_DIR.mkdir(parents=True, exist_ok=True)
app.mount(settings.storage_public_url.rstrip("/"), StaticFiles(directory=STORAGE_DIR), name="files")


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
	return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.get("/info")
def root():
	return {"status": "ok", "gateway_configured": bool(settings.gateway_api_key)}


@app.on_event("startup")
async def startup_event():
	init_db()
	logger.info("Database schema ready")
