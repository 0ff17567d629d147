from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
	return {"ok": True}


@router.get("/info")
def info(request: Request):
	state = request.app.state
	return {
		"status": "ok",
		"gemini_configured": getattr(state, "gemini", None) is not None,
		"transcription_configured": getattr(state, "transcriber", None) is not None,
	}
