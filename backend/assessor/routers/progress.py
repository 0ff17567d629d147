from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..progress import ProgressStore

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("/{uid}")
def get_progress(uid: str, db: Session = Depends(get_db)):
	snapshot = ProgressStore(db).get(uid)
	if snapshot is None:
		raise HTTPException(status_code=404, detail="No progress recorded for this user")
	return {"ok": True, "progress": snapshot.model_dump(mode="json", exclude={"new_badges"})}


@router.get("/{uid}/history")
def get_history(uid: str, limit: int = Query(default=20, ge=1, le=100), db: Session = Depends(get_db)):
	entries = ProgressStore(db).history(uid, limit=limit)
	return {"ok": True, "history": [e.model_dump(mode="json") for e in entries]}
