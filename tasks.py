# tasks.py
import asyncio
import json
import logging
from pathlib import Path

from celery_app import celery
from services import settings
from services.conversion import ConversionOptions, convert_skeleton
from services.llm_resolver import resolver_from_env

LOG = logging.getLogger(__name__)

RESULTS_DIR = Path("static/queue_results")


def options_from_payload(payload: dict) -> ConversionOptions:
    """
    payload example:
    {
      "input_path": "uploads/avatar.scene.json",
      "output_path": "static/mappings/avatar.humanoid.json",
      "minimum_confidence": 0.5,
      "use_llm": true,
      "llm_fallback": true,
      "context": "Mixamo export, fingers stripped",
      "meta": {"name": "Avatar"}
    }
    """
    input_path = payload["input_path"]
    output_path = payload.get("output_path") or str(
        Path(settings.MAPPING_OUT_DIR) / (Path(input_path).stem + ".humanoid.json"))
    return ConversionOptions(
        input_path=input_path,
        output_path=output_path,
        meta=payload.get("meta"),
        minimum_confidence=float(payload.get("minimum_confidence", settings.MIN_CONFIDENCE)),
        llm_resolver=resolver_from_env() if payload.get("use_llm") else None,
        llm_context=payload.get("context"),
        llm_failure_policy="fallback" if payload.get("llm_fallback") else "raise",
    )


# no autoretry: resolver failures are surfaced, not retried
@celery.task(bind=True, name="convert_skeleton", acks_late=True)
def convert_skeleton_task(self, payload: dict):
    opts = options_from_payload(payload)
    LOG.info("task %s: converting %s", self.request.id, opts.input_path)
    res = asyncio.run(convert_skeleton(opts))

    RESULTS_DIR.mkdir(parents=True, exist_ok=True)
    result_path = RESULTS_DIR / f"{self.request.id}.json"
    with open(result_path, "w") as f:
        json.dump(res.to_dict(), f, indent=2)
    return {"ok": True, "result_file": str(result_path), "manifest": res.manifest_path, "warnings": res.warnings}
