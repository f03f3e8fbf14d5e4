# services/rig_manifest.py
"""
Turn a MappingResult into a humanoid bone manifest for the rig builder.
Unresolved or low-confidence slots become warnings; the build only fails when a
required slot cannot be bound to a bone that exists in the scene.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from services.bone_mapper import MappingResult
from services.errors import MissingRequiredBonesError
from services.humanoid_schema import HUMANOID_SLOTS, REQUIRED_SLOTS

LOG = logging.getLogger(__name__)

DEFAULT_META = {
    "metaVersion": "1",
    "name": "Converted Avatar",
    "authors": ["skeleton-mapper"],
    "licenseUrl": "https://vrm.dev/licenses/vrm-1.0/",
}


def mapping_warning(slot: str, match) -> Optional[str]:
    if match is None:
        return f"Missing mapping for {slot}."
    if match.confidence_level == "low":
        return f"Low confidence mapping for {slot} ({match.source.name})."
    return None


def build_meta(meta: Optional[Dict] = None) -> Dict:
    merged = dict(DEFAULT_META)
    merged.update({k: v for k, v in (meta or {}).items() if v is not None})
    merged["metaVersion"] = "1"
    return merged


def build_humanoid_manifest(bone_names: Iterable[str], mapping: MappingResult,
                            meta: Optional[Dict] = None) -> Tuple[Dict, List[str]]:
    available = set(bone_names)
    warnings: List[str] = []
    human_bones: Dict[str, Dict] = {}

    for slot in HUMANOID_SLOTS:
        match = mapping.get(slot)
        warning = mapping_warning(slot, match)
        if warning:
            warnings.append(warning)
        if match is None:
            continue
        if match.source.name not in available:
            warnings.append(f"Bone node {match.source.name} not found for {slot}.")
            continue
        human_bones[slot] = {
            "node": match.source.name,
            "confidence": round(match.confidence, 4),
            "level": match.confidence_level,
            "reasons": list(match.reasons),
        }

    missing = [slot for slot in REQUIRED_SLOTS if slot not in human_bones]
    if missing:
        raise MissingRequiredBonesError(missing)

    manifest = {
        "meta": build_meta(meta),
        "humanBones": human_bones,
        "unmapped": [b.name for b in mapping.unmapped],
    }
    LOG.info("manifest: %d human bones, %d warnings", len(human_bones), len(warnings))
    return manifest, warnings


def write_manifest(path, manifest: Dict) -> str:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    return str(p)
