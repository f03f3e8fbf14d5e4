# services/conversion.py
"""
End-to-end conversion:
1) load scene -> pick skeleton
2) heuristic slot mapping
3) external resolver for the slots still missing (optional)
4) merge suggestions
5) build + write the humanoid manifest
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from services.bone_mapper import DEFAULT_MIN_CONFIDENCE, MappingResult, map_humanoid_bones
from services.errors import LlmResolverError
from services.llm_resolver import LlmResolver, LlmResolverRequest, LlmResolverResult, resolve_with_llm
from services.rig_manifest import build_humanoid_manifest, write_manifest
from services.skeleton_loader import SceneLoadResult, load_scene, select_skeleton
from services.suggestion_merge import apply_suggestions

LOG = logging.getLogger(__name__)

LLM_POLICIES = ("raise", "fallback")


@dataclass
class ConversionOptions:
    input_path: str
    output_path: str
    meta: Optional[Dict] = None
    minimum_confidence: float = DEFAULT_MIN_CONFIDENCE
    llm_resolver: Optional[LlmResolver] = None
    llm_context: Optional[str] = None
    # "raise": resolver failures abort the conversion; "fallback": keep heuristic mapping
    llm_failure_policy: str = "raise"
    load_scene: Optional[Callable[[str], SceneLoadResult]] = None


@dataclass
class ConversionResult:
    manifest_path: str
    manifest: Dict
    warnings: List[str] = field(default_factory=list)
    bone_mapping: Optional[MappingResult] = None
    llm_result: Optional[LlmResolverResult] = None

    def to_dict(self) -> dict:
        return {
            "manifest_path": self.manifest_path,
            "manifest": self.manifest,
            "warnings": list(self.warnings),
            "mapping": self.bone_mapping.to_dict() if self.bone_mapping else None,
            "llm": self.llm_result.to_dict() if self.llm_result else None,
        }


async def augment_with_llm(skeleton, mapping: MappingResult, resolver: LlmResolver,
                           context: Optional[str] = None, failure_policy: str = "raise"):
    """
    Ask the resolver for the missing slots only and merge what it returns.
    Returns (mapping, warnings, llm_result). llm_result is None when nothing was asked
    or the call failed under the fallback policy.
    """
    if failure_policy not in LLM_POLICIES:
        raise ValueError(f"unknown llm failure policy: {failure_policy}")
    missing = mapping.missing_slots()
    if not missing:
        return mapping, [], None

    warnings: List[str] = []
    try:
        llm_result = await resolve_with_llm(resolver, LlmResolverRequest(
            skeleton=skeleton, targets=missing, context=context))
    except LlmResolverError as e:
        if failure_policy == "raise":
            raise
        LOG.warning("external resolver failed, keeping heuristic mapping: %s", e)
        return mapping, [f"External resolver failed: {e}"], None

    warnings.extend(llm_result.warnings)
    merged, merge_warnings = apply_suggestions(skeleton, mapping, llm_result.suggestions)
    warnings.extend(merge_warnings)
    return merged, warnings, llm_result


async def convert_skeleton(options: ConversionOptions) -> ConversionResult:
    loader = options.load_scene or load_scene
    scene = loader(options.input_path)
    skeleton = select_skeleton(scene)

    mapping = map_humanoid_bones(skeleton, options.minimum_confidence)
    warnings: List[str] = []
    llm_result = None

    if options.llm_resolver is not None:
        mapping, llm_warnings, llm_result = await augment_with_llm(
            skeleton, mapping, options.llm_resolver,
            context=options.llm_context, failure_policy=options.llm_failure_policy)
        warnings.extend(llm_warnings)

    manifest, build_warnings = build_humanoid_manifest(scene.bone_names, mapping, options.meta)
    warnings.extend(build_warnings)

    out = write_manifest(options.output_path, manifest)
    LOG.info("converted %s -> %s (%d warnings)", options.input_path, out, len(warnings))
    return ConversionResult(
        manifest_path=out,
        manifest=manifest,
        warnings=warnings,
        bone_mapping=mapping,
        llm_result=llm_result,
    )
