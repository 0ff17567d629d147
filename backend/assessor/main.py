import logging

import uvicorn

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import Base, engine, ensure_schema
from .errors import AssessmentError, MethodNotAllowed, PersistenceFailure
from .gemini_client import GeminiClient
from .settings import settings
from .transcription_client import TranscriptionClient
from .routers import health
from .routers import assess
from .routers import progress

logger = logging.getLogger(__name__)

app = FastAPI(title="English Proficiency Assessor API")
app.include_router(health.router)
app.include_router(assess.router)
app.include_router(progress.router)


@app.exception_handler(AssessmentError)
async def assessment_error_handler(request: Request, exc: AssessmentError):
	if isinstance(exc, PersistenceFailure):
		logger.error("assessment not saved: %s", exc.message)
	elif exc.status_code >= 500:
		logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
	return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
	if exc.status_code == 405:
		return JSONResponse(status_code=405, content=MethodNotAllowed("Method not allowed").to_payload())
	return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
	logger.exception("%s %s crashed", request.method, request.url.path)
	return JSONResponse(status_code=500, content={"ok": False, "error": str(exc) or exc.__class__.__name__})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
	fields = ", ".join(".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors())
	message = f"invalid or missing fields: {fields}" if fields else "invalid request"
	return JSONResponse(status_code=400, content={"ok": False, "error": message})


def _build_client(factory, name: str):
	try:
		return factory()
	except ValueError as err:
		logger.warning("%s disabled: %s", name, err)
		return None


@app.on_event("startup")
async def startup_event():
	logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
	logging.getLogger("httpx").setLevel(logging.WARNING)
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	ensure_schema()
	# Provider clients are created once and shared by every request
	app.state.gemini = _build_client(GeminiClient, "Text evaluation")
	app.state.transcriber = _build_client(TranscriptionClient, "Transcription")


@app.on_event("shutdown")
async def shutdown_event():
	for name in ("gemini", "transcriber"):
		client = getattr(app.state, name, None)
		if client is not None:
			await client.aclose()


def run() -> None:
	uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
	run()
