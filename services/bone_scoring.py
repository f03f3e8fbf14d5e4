# services/bone_scoring.py
"""
Per-signal heuristics used to rank a source bone against a humanoid slot.

Every scorer is pure: (bone, slot[, bounds]) -> score in [0, 1].
  - name:      synonym / substring match on the normalized bone name
  - structure: does the recorded parent look like the slot's expected parent
  - spatial:   does the bone's height fall inside the slot's vertical band
  - side:      left/right agreement, from the name or the sign of X
"""
import re
from typing import NamedTuple, Optional, Sequence, Tuple

import numpy as np

from services.humanoid_schema import SLOT_TABLE, VERTICAL_BANDS, expected_side

# vendor rig prefixes: mixamo namespace, generic armature namespace, 3ds Max biped
PREFIX_PATTERNS = (
    re.compile(r"^mixamorig[:_]", re.IGNORECASE),
    re.compile(r"^armature[:_]", re.IGNORECASE),
    re.compile(r"^bip\d*[:_]", re.IGNORECASE),
)
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_LEFT_TOKEN = re.compile(r"(^|[^a-z])l(?![a-z])")
_RIGHT_TOKEN = re.compile(r"(^|[^a-z])r(?![a-z])")

MIN_VERTICAL_RANGE = 0.001
BAND_TOLERANCE = 0.15


class SignalScores(NamedTuple):
    name: float
    structural: float
    spatial: float
    side: float


def normalize_bone_name(value: str) -> str:
    normalized = value.strip().lower()
    for pattern in PREFIX_PATTERNS:
        normalized = pattern.sub("", normalized)
    return _NON_ALNUM.sub("", normalized)


def detect_side(name: str) -> Optional[str]:
    lowered = name.lower()
    if "left" in lowered:
        return "left"
    if "right" in lowered:
        return "right"
    if _LEFT_TOKEN.search(lowered):
        return "left"
    if _RIGHT_TOKEN.search(lowered):
        return "right"
    if lowered.startswith("l"):
        return "left"
    if lowered.startswith("r"):
        return "right"
    return None


def vertical_bounds(bones: Sequence) -> Tuple[float, float]:
    if not bones:
        return 0.0, 0.0
    ys = np.array([b.position[1] for b in bones], dtype=float)
    return float(ys.min()), float(ys.max())


def score_name(bone_name: str, slot: str) -> float:
    normalized = normalize_bone_name(bone_name)
    synonyms = SLOT_TABLE[slot].synonyms
    slot_normalized = normalize_bone_name(slot)
    if normalized == slot_normalized or normalized in synonyms:
        return 1.0
    if any(syn in normalized for syn in synonyms):
        return 0.75
    if slot_normalized in normalized:
        return 0.5
    return 0.0


def score_structure(bone, slot: str) -> float:
    expected_parent = SLOT_TABLE[slot].parent
    if not expected_parent or not bone.parent_name:
        return 0.0
    parent = normalize_bone_name(bone.parent_name)
    synonyms = SLOT_TABLE[expected_parent].synonyms
    if parent == normalize_bone_name(expected_parent) or parent in synonyms:
        return 1.0
    if any(syn in parent for syn in synonyms):
        return 0.5
    return 0.0


def score_spatial(bone, slot: str, bounds: Tuple[float, float]) -> float:
    min_y, max_y = bounds
    span = max(MIN_VERTICAL_RANGE, max_y - min_y)
    y = (bone.position[1] - min_y) / span
    low, high = VERTICAL_BANDS[SLOT_TABLE[slot].band]
    if low <= y <= high:
        return 1.0
    distance = min(abs(y - low), abs(y - high))
    return 0.5 if distance <= BAND_TOLERANCE else 0.0


def score_side(bone, slot: str) -> float:
    wanted = expected_side(slot)
    if not wanted:
        return 0.0
    side = detect_side(bone.name)
    if side is None:
        side = "left" if bone.position[0] < 0 else "right"
    return 1.0 if side == wanted else 0.0


def score_candidate(bone, slot: str, bounds: Tuple[float, float]) -> SignalScores:
    return SignalScores(
        name=score_name(bone.name, slot),
        structural=score_structure(bone, slot),
        spatial=score_spatial(bone, slot, bounds),
        side=score_side(bone, slot),
    )
