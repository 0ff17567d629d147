from __future__ import annotations
from io import BytesIO
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import BadRequest
from ..evaluation import Evaluator
from ..progress import ProgressStore
from ..schemas import AssessmentResult, PlacementSubmission, WritingSample

try:
	import pytesseract  # type: ignore
	from PIL import Image  # type: ignore
except Exception:
	# Defer import errors until the OCR endpoint is actually called
	pytesseract = None  # type: ignore
	Image = None  # type: ignore


router = APIRouter(prefix="/assess", tags=["assessment"])


def get_evaluator(request: Request) -> Evaluator:
	state = request.app.state
	return Evaluator(getattr(state, "gemini", None), getattr(state, "transcriber", None))


def _respond(db: Session, uid: Optional[str], kind: str, payload: Dict[str, Any], result: AssessmentResult) -> Dict[str, Any]:
	body: Dict[str, Any] = {"ok": True, "result": result.to_dict()}
	# Anonymous assessments are scored but not tracked
	if uid:
		snapshot = ProgressStore(db).record_assessment(uid, kind, payload, result)
		body["progress"] = snapshot.model_dump(mode="json")
	return body


@router.post("/speaking")
async def assess_speaking(
	file: UploadFile = File(...),
	uid: Optional[str] = Form(default=None),
	evaluator: Evaluator = Depends(get_evaluator),
	db: Session = Depends(get_db),
):
	audio = await file.read()
	if not audio:
		raise BadRequest("file is required")
	result = await evaluator.evaluate_speaking(audio)
	payload = {
		"filename": file.filename,
		"content_type": file.content_type,
		"size": len(audio),
		"transcript": (result.details or {}).get("transcript"),
	}
	return _respond(db, (uid or "").strip() or None, "speaking", payload, result)


@router.post("/writing")
async def assess_writing(req: WritingSample, evaluator: Evaluator = Depends(get_evaluator), db: Session = Depends(get_db)):
	result = await evaluator.evaluate_text(req.text, "writing")
	return _respond(db, req.uid, "writing", {"textSample": req.text}, result)


@router.post("/writing/image")
async def assess_writing_image(
	file: UploadFile = File(...),
	uid: str = Form(...),
	evaluator: Evaluator = Depends(get_evaluator),
	db: Session = Depends(get_db),
):
	if pytesseract is None or Image is None:
		raise HTTPException(
			status_code=500,
			detail="OCR dependencies not installed. Install system package 'tesseract-ocr' and Python packages 'pytesseract' and 'Pillow'",
		)
	uid = uid.strip()
	if not uid:
		raise BadRequest("uid is required")
	try:
		content = await file.read()
		img = Image.open(BytesIO(content))
		text = pytesseract.image_to_string(img).strip()
	except Exception as e:
		raise BadRequest(f"Failed to OCR image: {e}") from e
	if not text:
		raise BadRequest("No text found in image")
	# Reuse text scoring
	result = await evaluator.evaluate_text(text, "writing")
	return _respond(db, uid, "writing", {"textSample": text, "source": "image"}, result)


@router.post("/placement")
async def assess_placement(req: PlacementSubmission, evaluator: Evaluator = Depends(get_evaluator), db: Session = Depends(get_db)):
	result = await evaluator.evaluate_placement(req.answers)
	payload = {
		"claimedLevel": req.claimed_level,
		"answers": [a.model_dump(exclude_none=True) for a in req.answers],
	}
	return _respond(db, (req.uid or "").strip() or None, "placement", payload, result)
