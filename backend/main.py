"""FastAPI entrypoint for the pattern discovery backend."""

from __future__ import annotations

import asyncio
import os
import traceback

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from app_state import AnalysisRuns
from checkpoint import AnalysisAborted
from models import (
    AbortRequest,
    AnalysisResultPayload,
    AnalyzeRequest,
    ReadinessPayload,
    ReadinessRequest,
    RunProgressPayload,
)
from pattern_service import PatternService, data_readiness
from settings import PatternSettings

app = FastAPI(title="Pattern Discovery Backend", description="Recurring themes in daily energy and stress notes")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

pattern_service = PatternService(settings=PatternSettings.from_env())
runs = AnalysisRuns()


@app.get("/", tags=["health"])
async def root():
    return {"status": "ok", "message": "Pattern discovery backend is running"}


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "message": "Pattern discovery backend is running"}


def _run_analysis(request: AnalyzeRequest, run_id: str):
    run = runs.get(run_id)
    entries = [payload.to_entry() for payload in request.entries]
    try:
        return pattern_service.run(
            entries,
            request.category,
            should_abort=run.token,
            on_progress=lambda update: runs.record_progress(run_id, update),
            algorithm=request.algorithm,
        )
    finally:
        runs.finish(run_id)


@app.post("/patterns/analyze", response_model=AnalysisResultPayload, tags=["patterns"])
async def analyze(request: AnalyzeRequest):
    try:
        run = runs.start(request.run_id)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    try:
        result = await asyncio.to_thread(_run_analysis, request, run.run_id)
        return AnalysisResultPayload.from_result(result)
    except AnalysisAborted as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception as exc:
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=str(exc))


@app.post("/patterns/abort", tags=["patterns"])
async def abort(request: AbortRequest):
    if not runs.abort(request.run_id):
        raise HTTPException(status_code=404, detail="Run not found")
    return {"success": True, "run_id": request.run_id}


@app.get("/patterns/runs/{run_id}", response_model=RunProgressPayload, tags=["patterns"])
async def run_progress(run_id: str):
    run = runs.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return RunProgressPayload(run_id=run.run_id, stage=run.stage, fraction=run.fraction, finished=run.finished)


@app.post("/patterns/readiness", response_model=ReadinessPayload, tags=["patterns"])
async def readiness(request: ReadinessRequest):
    try:
        entries = [payload.to_entry() for payload in request.entries]
        return ReadinessPayload(**data_readiness(entries))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.environ.get("PATTERNS_HOST", "127.0.0.1"),
        port=int(os.environ.get("PATTERNS_PORT", "8000")),
    )
