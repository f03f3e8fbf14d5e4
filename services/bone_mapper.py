# services/bone_mapper.py
"""
Greedy assignment of source bones onto the canonical humanoid slots.

Slots are visited in HUMANOID_SLOTS order. For each slot every unclaimed bone is
scored; the best one (first seen wins ties) is accepted when its confidence
clears the threshold, and is then unavailable to later slots.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from services.bone_scoring import score_candidate, vertical_bounds
from services.confidence import compute_confidence
from services.humanoid_schema import HUMANOID_SLOTS
from services.settings import validate_threshold

LOG = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.5


@dataclass(frozen=True, eq=False)
class SourceBone:
    # eq=False: bones are told apart by identity, names may collide
    name: str
    parent_name: Optional[str]
    position: Tuple[float, float, float]

    def to_dict(self) -> dict:
        return {"name": self.name, "parent": self.parent_name, "position": list(self.position)}


@dataclass(frozen=True)
class Skeleton:
    bones: Tuple[SourceBone, ...] = ()

    @classmethod
    def from_bones(cls, bones: Sequence[SourceBone]) -> "Skeleton":
        return cls(tuple(bones))

    def bone_names(self) -> List[str]:
        return [b.name for b in self.bones]

    def find(self, name: str) -> Optional[SourceBone]:
        for bone in self.bones:
            if bone.name == name:
                return bone
        return None


@dataclass(frozen=True)
class Match:
    slot: str
    source: SourceBone
    confidence: float
    confidence_level: str
    reasons: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "source": self.source.name,
            "confidence": round(self.confidence, 4),
            "level": self.confidence_level,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class MappingResult:
    matches: Dict[str, Optional[Match]] = field(default_factory=dict)
    unmapped: Tuple[SourceBone, ...] = ()

    def get(self, slot: str) -> Optional[Match]:
        return self.matches.get(slot)

    def missing_slots(self) -> List[str]:
        return [slot for slot in HUMANOID_SLOTS if self.matches.get(slot) is None]

    def claimed_bones(self) -> List[SourceBone]:
        return [m.source for m in self.matches.values() if m is not None]

    def with_matches(self, matches: Dict[str, Optional[Match]], unmapped: Sequence[SourceBone]) -> "MappingResult":
        return replace(self, matches=dict(matches), unmapped=tuple(unmapped))

    def to_dict(self) -> dict:
        return {
            "mappings": {
                slot: (m.to_dict() if m is not None else None)
                for slot, m in self.matches.items()
            },
            "unmapped": [b.name for b in self.unmapped],
        }


def _format_reasons(scores) -> Tuple[str, ...]:
    labelled = (
        ("name", scores.name),
        ("structure", scores.structural),
        ("spatial", scores.spatial),
        ("side", scores.side),
    )
    return tuple(f"{label}:{value:.2f}" for label, value in labelled if value > 0)


def map_humanoid_bones(skeleton: Skeleton, minimum_confidence: float = DEFAULT_MIN_CONFIDENCE) -> MappingResult:
    validate_threshold(minimum_confidence)
    bounds = vertical_bounds(skeleton.bones)

    # claimed bone ids, scoped to this call
    used = set()
    matches: Dict[str, Optional[Match]] = {}

    for slot in HUMANOID_SLOTS:
        best: Optional[Match] = None
        for bone in skeleton.bones:
            if id(bone) in used:
                continue
            scores = score_candidate(bone, slot, bounds)
            score, level = compute_confidence(*scores)
            if best is None or score > best.confidence:
                best = Match(slot, bone, score, level, _format_reasons(scores))

        if best is not None and best.confidence >= minimum_confidence:
            matches[slot] = best
            used.add(id(best.source))
            LOG.debug("slot %s -> %s (%.2f %s)", slot, best.source.name, best.confidence, best.confidence_level)
        else:
            matches[slot] = None
            if best is not None:
                LOG.debug("slot %s unresolved, best %s scored %.2f", slot, best.source.name, best.confidence)

    unmapped = tuple(b for b in skeleton.bones if id(b) not in used)
    LOG.info("mapped %d/%d slots, %d bones unmapped",
             len(HUMANOID_SLOTS) - sum(1 for m in matches.values() if m is None),
             len(HUMANOID_SLOTS), len(unmapped))
    return MappingResult(matches=matches, unmapped=unmapped)
