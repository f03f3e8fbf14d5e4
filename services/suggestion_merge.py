# services/suggestion_merge.py
"""
Fold externally proposed slot -> bone suggestions into a heuristic mapping.

Lenient: a bad suggestion becomes a warning and is skipped, the rest of
the batch still applies. Only absent slots are filled and a source bone is
never given to two slots (first claim wins).
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from services.bone_mapper import Match, MappingResult, Skeleton, SourceBone
from services.confidence import score_to_tier
from services.humanoid_schema import is_known_slot

LOG = logging.getLogger(__name__)

DEFAULT_EXTERNAL_CONFIDENCE = 0.6


def recalculate_unmapped(skeleton: Skeleton, matches: Dict[str, Optional[Match]]) -> Tuple[SourceBone, ...]:
    claimed = {id(m.source) for m in matches.values() if m is not None}
    return tuple(b for b in skeleton.bones if id(b) not in claimed)


def apply_suggestions(skeleton: Skeleton, mapping: MappingResult,
                      suggestions: Iterable) -> Tuple[MappingResult, List[str]]:
    """
    suggestions: objects with .slot, .source (bone name or None), .confidence, .reasoning
    Returns (new_mapping, warnings). The input mapping is left untouched.
    """
    warnings: List[str] = []
    updated: Dict[str, Optional[Match]] = dict(mapping.matches)
    owner = {id(m.source): slot for slot, m in updated.items() if m is not None}

    for suggestion in suggestions:
        slot = suggestion.slot
        if not is_known_slot(slot):
            warnings.append(f"External resolver suggested unknown slot {slot}.")
            continue

        if updated.get(slot) is not None:
            warnings.append(f"External resolver suggested {slot}, but mapping already exists.")
            continue

        if not suggestion.source:
            warnings.append(f"External resolver did not provide a source for {slot}.")
            continue

        candidates = [b for b in skeleton.bones if b.name == suggestion.source]
        if not candidates:
            warnings.append(f"External resolver suggested unknown source bone {suggestion.source}.")
            continue

        bone = next((b for b in candidates if id(b) not in owner), None)
        if bone is None:
            other = owner[id(candidates[0])]
            warnings.append(
                f"External resolver suggested {suggestion.source} for {slot}, but it is already mapped to {other}."
            )
            continue

        confidence = suggestion.confidence if suggestion.confidence is not None else DEFAULT_EXTERNAL_CONFIDENCE
        updated[slot] = Match(
            slot=slot,
            source=bone,
            confidence=confidence,
            confidence_level=score_to_tier(confidence),
            reasons=(suggestion.reasoning or "external",),
        )
        owner[id(bone)] = slot
        LOG.info("external suggestion accepted: %s -> %s (%.2f)", slot, bone.name, confidence)

    for w in warnings:
        LOG.warning(w)
    merged = mapping.with_matches(updated, recalculate_unmapped(skeleton, updated))
    return merged, warnings
