# routes/mapping.py
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from pathlib import Path
from typing import Any, Dict, List, Optional

from services import settings
from services.bone_mapper import Skeleton, map_humanoid_bones
from services.conversion import ConversionOptions, augment_with_llm, convert_skeleton
from services.errors import LlmResolverError, MissingRequiredBonesError, SceneFormatError, SkeletonNotFoundError
from services.humanoid_schema import describe_slots
from services.llm_resolver import resolver_from_env
from services.skeleton_loader import parse_scene, select_skeleton

router = APIRouter()


class ResolveReq(BaseModel):
    bones: List[Dict[str, Any]]
    minimum_confidence: float = Field(default=settings.MIN_CONFIDENCE, ge=0.0, le=1.0)
    context: Optional[str] = None
    use_llm: bool = False


class ConvertReq(BaseModel):
    input_path: str
    output_path: Optional[str] = None
    minimum_confidence: float = Field(default=settings.MIN_CONFIDENCE, ge=0.0, le=1.0)
    context: Optional[str] = None
    use_llm: bool = False
    llm_fallback: bool = False
    meta: Optional[Dict[str, Any]] = None


def _llm_or_503(use_llm: bool):
    if not use_llm:
        return None
    resolver = resolver_from_env()
    if resolver is None:
        raise HTTPException(status_code=503, detail="External resolver not configured (OPENAI_API_KEY)")
    return resolver


def default_output_path(input_path: str) -> str:
    return str(Path(settings.MAPPING_OUT_DIR) / (Path(input_path).stem + ".humanoid.json"))


@router.get("/slots")
def list_slots():
    return {"ok": True, "slots": describe_slots()}


@router.post("/resolve")
async def resolve(req: ResolveReq):
    resolver = _llm_or_503(req.use_llm)
    try:
        skeleton: Skeleton = select_skeleton(parse_scene({"bones": req.bones}))
    except (SceneFormatError, SkeletonNotFoundError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    mapping = map_humanoid_bones(skeleton, req.minimum_confidence)
    warnings: List[str] = []
    llm = None
    if resolver is not None:
        try:
            mapping, warnings, llm = await augment_with_llm(skeleton, mapping, resolver, context=req.context)
        except LlmResolverError as e:
            raise HTTPException(status_code=502, detail=str(e))

    return {
        "ok": True,
        "mapping": mapping.to_dict(),
        "missing": mapping.missing_slots(),
        "warnings": warnings,
        "llm": llm.to_dict() if llm else None,
    }


@router.post("/convert")
async def convert(req: ConvertReq):
    if not Path(req.input_path).exists():
        raise HTTPException(status_code=404, detail="scene file not found")
    opts = ConversionOptions(
        input_path=req.input_path,
        output_path=req.output_path or default_output_path(req.input_path),
        meta=req.meta,
        minimum_confidence=req.minimum_confidence,
        llm_resolver=_llm_or_503(req.use_llm),
        llm_context=req.context,
        llm_failure_policy="fallback" if req.llm_fallback else "raise",
    )
    try:
        res = await convert_skeleton(opts)
    except (SceneFormatError, SkeletonNotFoundError, MissingRequiredBonesError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except LlmResolverError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"ok": True, **res.to_dict()}
