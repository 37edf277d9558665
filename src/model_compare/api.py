from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .errors import ModelCompareError, UnreachableTarget
from .selector import ThresholdSelector, policy_params
from .threshold_analyzer import SweepTable, evaluate, log_odds_grid, row_to_dict

app = FastAPI(title="Threshold Sweep API")


class SweepRequest(BaseModel):
    scores: List[float]
    labels: List[bool]
    thresholds: Optional[List[float]] = None
    n_thresholds: int = Field(default=200, ge=1)
    epsilon: float = 1e-4


class SelectRequest(SweepRequest):
    policy: str = "sensitivity_floor"
    target_sensitivity: float = 0.9
    fn_cost: float = 1.0
    fp_cost: float = 1.0


@app.exception_handler(ModelCompareError)
async def model_compare_error_handler(request: Request, exc: ModelCompareError):
    status = 409 if isinstance(exc, UnreachableTarget) else 422
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


def _sweep(req: SweepRequest) -> SweepTable:
    thresholds = req.thresholds if req.thresholds is not None else log_odds_grid(req.n_thresholds, req.epsilon)
    return evaluate(req.scores, req.labels, thresholds)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/sweep")
def sweep(req: SweepRequest):
    table = _sweep(req)
    return {"rows": table.rows(), "auc": table.auc()}


@app.post("/select")
def select(req: SelectRequest):
    params = policy_params(req.policy, req.model_dump())
    row = ThresholdSelector(req.policy, **params).select(_sweep(req))
    return {"policy": req.policy, "row": row_to_dict(row)}
