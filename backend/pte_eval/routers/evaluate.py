from __future__ import annotations
from fastapi import APIRouter, HTTPException
from typing import Any, Dict, List

from ..engine import question_types as qt
from ..engine.dispatcher import evaluate
from ..errors import UnsupportedQuestionType
from ..models import EvaluationRequest, NormalizedEvaluation
from ..oracle_client import grade_with_oracle
from ..settings import settings

router = APIRouter(prefix="/evaluate", tags=["evaluation"])


@router.post("", response_model=NormalizedEvaluation)
async def evaluate_response(req: EvaluationRequest):
	try:
		spec = qt.lookup(req.question_type)
		# Without a supplied rubric an oracle type either calls out or fails cleanly
		if spec.oracle_graded and req.oracle_payload is None and settings.oracle_configured:
			return await grade_with_oracle(req)
		return evaluate(req, model_version=settings.gemini_model if spec.oracle_graded else None)
	except UnsupportedQuestionType as e:
		raise HTTPException(status_code=400, detail=str(e))


@router.get("/types")
def list_types() -> List[Dict[str, Any]]:
	return [qt.describe(spec) for spec in qt.supported_types()]
