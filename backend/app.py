"""
HalalCheck verdict engine FastAPI application.

Endpoints:
    GET    /                                                        Health check
    POST   /analyze                                                 Classify + assess one product
    POST   /analyze/batch                                           Classify + assess several products
    GET    /session                                                 Current session state
    DELETE /session                                                 Clear session
    POST   /assessments/{id}/ingredients/{name}/evidence            Attach evidence file
    DELETE /assessments/{id}/ingredients/{name}/evidence/{eid}      Remove evidence (idempotent)
    POST   /assessments/{id}/submit                                 Hand off to certification pipeline
    POST   /batch/submit                                            Hand off batch history
"""
from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import List, Optional
import logging
import threading
from dotenv import load_dotenv
from pathlib import Path

# Load env vars
load_dotenv(Path(__file__).parent / ".env")

from halalcheck.config import EVIDENCE_MAX_BYTES, log_config
from halalcheck.errors import (
    AssessmentNotFound,
    HalalCheckError,
    PolicyError,
    TransientError,
    ValidationError,
)
from halalcheck.evidence.ledger import EvidenceUpload
from halalcheck.models.assessment import EvidenceType
from halalcheck.service import AnalysisSession
from halalcheck.session.cache import SessionState

# Logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize App
app = FastAPI(title="HalalCheck Verdict Engine API")

log_config()

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_session: Optional[AnalysisSession] = None
_session_lock = threading.Lock()


def get_session() -> AnalysisSession:
    global _session
    with _session_lock:
        if _session is None:
            session = AnalysisSession()
            session.start()
            _session = session
        return _session


@app.on_event("shutdown")
def _close_session():
    if _session is not None:
        _session.close()


# --- Request/Response Models ---
class AnalyzeRequest(BaseModel):
    product_name: str
    ingredients_text: str


class BatchProduct(BaseModel):
    product_name: str
    ingredients_text: str


class BatchAnalyzeRequest(BaseModel):
    products: List[BatchProduct]


class SubmitRequest(BaseModel):
    client_reference: Optional[str] = None


class BatchSubmitRequest(BaseModel):
    client_reference: Optional[str] = None
    combined: bool = False


# --- Helper Functions ---

def _raise_http(e: HalalCheckError) -> None:
    if isinstance(e, AssessmentNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=422, detail=str(e))
    if isinstance(e, PolicyError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, TransientError):
        raise HTTPException(status_code=502, detail=str(e))
    raise HTTPException(status_code=500, detail=str(e))


def _state_json(state: SessionState) -> dict:
    return {
        "single_product_history": [a.to_dict() for a in state.single_product_history],
        "batch_history": [a.to_dict() for a in state.batch_history],
        "last_persisted_at": state.last_persisted_at,
    }


# --- Endpoints ---

@app.get("/")
def health_check():
    return {"status": "ok", "service": "HalalCheck Verdict Engine"}


@app.post("/analyze")
def analyze(request: AnalyzeRequest, session: AnalysisSession = Depends(get_session)):
    """Classifier -> normalizer -> rollup -> session history."""
    logger.info("Analyze request product=%s", request.product_name)
    if not request.ingredients_text.strip():
        raise HTTPException(status_code=422, detail="Please enter ingredients to analyze")
    try:
        product = session.analyze(request.product_name, request.ingredients_text)
        return product.to_dict()
    except HalalCheckError as e:
        logger.warning("Analyze failed: %s", e)
        _raise_http(e)


@app.post("/analyze/batch")
def analyze_batch(request: BatchAnalyzeRequest, session: AnalysisSession = Depends(get_session)):
    logger.info("Batch analyze request products=%d", len(request.products))
    try:
        built = session.analyze_batch([(p.product_name, p.ingredients_text) for p in request.products])
    except HalalCheckError as e:
        logger.warning("Batch analyze failed: %s", e)
        _raise_http(e)
    return {
        "total_processed": len(built),
        "results": [a.to_dict() for a in built],
    }


@app.get("/session")
def get_session_state(session: AnalysisSession = Depends(get_session)):
    return _state_json(session.state())


@app.delete("/session")
def clear_session(session: AnalysisSession = Depends(get_session)):
    session.clear()
    return {"status": "ok"}


@app.post("/assessments/{assessment_id}/ingredients/{ingredient_name}/evidence")
async def attach_evidence(
    assessment_id: str,
    ingredient_name: str,
    file: UploadFile = File(...),
    declared_type: str = Form("OTHER"),
    session: AnalysisSession = Depends(get_session),
):
    logger.info("Evidence upload assessment=%s ingredient=%s filename=%s", assessment_id, ingredient_name, file.filename)
    # One byte past the limit is enough for the size check to reject
    data = await file.read(EVIDENCE_MAX_BYTES + 1)
    upload = EvidenceUpload(
        filename=file.filename or "upload",
        mime_type=file.content_type or "",
        data=data,
        declared_type=EvidenceType.parse(declared_type),
    )
    try:
        # Per-assessment lock may block; keep it off the event loop
        record, product = await run_in_threadpool(session.attach_evidence, assessment_id, ingredient_name, upload)
    except HalalCheckError as e:
        logger.warning("Evidence upload rejected: %s", e)
        _raise_http(e)
    return {"evidence": record.to_dict(), "assessment": product.to_dict()}


@app.delete("/assessments/{assessment_id}/ingredients/{ingredient_name}/evidence/{evidence_id}")
def remove_evidence(
    assessment_id: str,
    ingredient_name: str,
    evidence_id: str,
    session: AnalysisSession = Depends(get_session),
):
    try:
        removed, product = session.remove_evidence(assessment_id, ingredient_name, evidence_id)
    except HalalCheckError as e:
        _raise_http(e)
    return {"removed": removed, "assessment": product.to_dict()}


@app.post("/assessments/{assessment_id}/submit")
def submit(assessment_id: str, body: SubmitRequest, session: AnalysisSession = Depends(get_session)):
    try:
        stored = session.submit(assessment_id, body.client_reference)
    except HalalCheckError as e:
        logger.warning("Submit failed assessment=%s: %s", assessment_id, e)
        _raise_http(e)
    return {"status": "submitted", "entry": stored}


@app.post("/batch/submit")
def submit_batch(body: BatchSubmitRequest, session: AnalysisSession = Depends(get_session)):
    try:
        stored = session.submit_batch(body.client_reference, combined=body.combined)
    except HalalCheckError as e:
        logger.warning("Batch submit failed: %s", e)
        _raise_http(e)
    return {"status": "submitted", "entries": stored}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
