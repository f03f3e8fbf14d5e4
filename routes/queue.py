# routes/queue.py
import json
import logging
from pathlib import Path
from typing import Any, Dict

from celery.result import AsyncResult
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from celery_app import celery

router = APIRouter()
LOG = logging.getLogger(__name__)

RESULTS_DIR = Path("static/queue_results")
KNOWN_TASKS = ("convert_skeleton",)


class JobReq(BaseModel):
    task: str = "convert_skeleton"
    payload: Dict[str, Any] = {}


def read_conversion_result(task_id: str):
    """
    Summary of a finished conversion from the result file the worker writes,
    or None while no file exists.
    """
    result_file = RESULTS_DIR / f"{task_id}.json"
    if not result_file.exists():
        return None
    data = json.loads(result_file.read_text(encoding="utf-8"))
    human_bones = (data.get("manifest") or {}).get("humanBones") or {}
    return {
        "result_file": str(result_file),
        "manifest_path": data.get("manifest_path"),
        "human_bones": len(human_bones),
        "warnings": data.get("warnings", []),
    }


@router.post("/submit")
def submit_job(req: JobReq):
    if req.task not in KNOWN_TASKS:
        raise HTTPException(status_code=400, detail="Unknown task")
    if not req.payload.get("input_path"):
        raise HTTPException(status_code=400, detail="payload.input_path is required")
    try:
        task = celery.send_task(req.task, args=[req.payload], kwargs={})
        return {"ok": True, "task_id": task.id}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/status/{task_id}")
def task_status(task_id: str):
    ar = AsyncResult(task_id, app=celery)
    res = {"task_id": task_id, "state": ar.state}
    if ar.state == "FAILURE":
        # conversion errors carry the human readable message
        res["error"] = str(ar.info)
    elif ar.state == "SUCCESS":
        summary = read_conversion_result(task_id)
        if summary is None:
            LOG.warning("task %s succeeded but %s has no result file", task_id, RESULTS_DIR)
        else:
            res.update(summary)
    return res


@router.post("/revoke/{task_id}")
def revoke_task(task_id: str, terminate: bool = True, signal: str = "SIGTERM"):
    ar = AsyncResult(task_id, app=celery)
    if ar.ready():
        raise HTTPException(status_code=409, detail=f"Task already finished ({ar.state})")
    celery.control.revoke(task_id, terminate=terminate, signal=signal)
    LOG.info("revoked conversion task %s", task_id)
    return {"ok": True, "revoked": task_id}
