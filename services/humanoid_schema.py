# services/humanoid_schema.py
"""
Canonical humanoid slot table.
Each slot carries its name synonyms (already normalized), the slot its bone is
expected to hang from, and the vertical band it usually sits in.
Scorers read everything from SLOT_TABLE, so adding a slot is a one-line change.
"""
from typing import Dict, NamedTuple, Optional, Tuple

HUMANOID_SLOTS: Tuple[str, ...] = (
    "hips",
    "spine",
    "chest",
    "upperChest",
    "neck",
    "head",
    "leftShoulder",
    "leftUpperArm",
    "leftLowerArm",
    "leftHand",
    "rightShoulder",
    "rightUpperArm",
    "rightLowerArm",
    "rightHand",
    "leftUpperLeg",
    "leftLowerLeg",
    "leftFoot",
    "leftToes",
    "rightUpperLeg",
    "rightLowerLeg",
    "rightFoot",
    "rightToes",
    "leftEye",
    "rightEye",
    "jaw",
)

# normalized Y interval (0 = lowest bone, 1 = highest bone)
VERTICAL_BANDS: Dict[str, Tuple[float, float]] = {
    "high": (0.75, 1.0),
    "upper": (0.55, 0.85),
    "mid": (0.35, 0.65),
    "lower": (0.25, 0.6),
    "low": (0.0, 0.35),
}


class SlotSpec(NamedTuple):
    name: str
    synonyms: Tuple[str, ...]
    parent: Optional[str]
    band: str


def _slot(name, synonyms, parent, band):
    return SlotSpec(name, tuple(synonyms), parent, band)


SLOT_TABLE: Dict[str, SlotSpec] = {
    s.name: s
    for s in (
        _slot("hips", ["hips", "pelvis", "hip", "root", "waist"], None, "mid"),
        _slot("spine", ["spine", "spine1", "spine01", "abdomen"], "hips", "mid"),
        _slot("chest", ["chest", "spine2", "spine02", "upperbody"], "spine", "upper"),
        _slot("upperChest", ["upperchest", "spine3", "spine03"], "chest", "upper"),
        _slot("neck", ["neck"], "upperChest", "high"),
        _slot("head", ["head", "headend"], "neck", "high"),
        _slot("leftShoulder", ["leftshoulder", "leftclavicle", "lclavicle"], "upperChest", "upper"),
        _slot("leftUpperArm", ["leftupperarm", "leftarm", "lupperarm", "luparm"], "leftShoulder", "upper"),
        _slot("leftLowerArm", ["leftlowerarm", "leftforearm", "llowerarm", "llarm"], "leftUpperArm", "lower"),
        _slot("leftHand", ["lefthand", "leftwrist", "lhand"], "leftLowerArm", "lower"),
        _slot("rightShoulder", ["rightshoulder", "rightclavicle", "rclavicle"], "upperChest", "upper"),
        _slot("rightUpperArm", ["rightupperarm", "rightarm", "rupperarm", "ruparm"], "rightShoulder", "upper"),
        _slot("rightLowerArm", ["rightlowerarm", "rightforearm", "rlowerarm", "rlarm"], "rightUpperArm", "lower"),
        _slot("rightHand", ["righthand", "rightwrist", "rhand"], "rightLowerArm", "lower"),
        _slot("leftUpperLeg", ["leftupperleg", "leftupleg", "leftthigh", "lthigh"], "hips", "lower"),
        _slot("leftLowerLeg", ["leftlowerleg", "leftleg", "leftcalf", "lcalf"], "leftUpperLeg", "low"),
        _slot("leftFoot", ["leftfoot", "leftankle", "lfoot"], "leftLowerLeg", "low"),
        _slot("leftToes", ["lefttoes", "lefttoe", "leftball", "ltoe"], "leftFoot", "low"),
        _slot("rightUpperLeg", ["rightupperleg", "rightupleg", "rightthigh", "rthigh"], "hips", "lower"),
        _slot("rightLowerLeg", ["rightlowerleg", "rightleg", "rightcalf", "rcalf"], "rightUpperLeg", "low"),
        _slot("rightFoot", ["rightfoot", "rightankle", "rfoot"], "rightLowerLeg", "low"),
        _slot("rightToes", ["righttoes", "righttoe", "rightball", "rtoe"], "rightFoot", "low"),
        _slot("leftEye", ["lefteye", "leye"], "head", "high"),
        _slot("rightEye", ["righteye", "reye"], "head", "high"),
        _slot("jaw", ["jaw", "chin"], "head", "high"),
    )
}

# a rig is unusable without these
REQUIRED_SLOTS: Tuple[str, ...] = (
    "hips",
    "spine",
    "head",
    "leftUpperArm",
    "leftLowerArm",
    "leftHand",
    "rightUpperArm",
    "rightLowerArm",
    "rightHand",
    "leftUpperLeg",
    "leftLowerLeg",
    "leftFoot",
    "rightUpperLeg",
    "rightLowerLeg",
    "rightFoot",
)


def is_known_slot(value) -> bool:
    return isinstance(value, str) and value in SLOT_TABLE


def expected_side(slot: str) -> Optional[str]:
    if slot.startswith("left"):
        return "left"
    if slot.startswith("right"):
        return "right"
    return None


def describe_slots():
    """
    JSON-friendly listing of the slot table, in resolution order.
    """
    out = []
    for name in HUMANOID_SLOTS:
        spec = SLOT_TABLE[name]
        out.append({
            "slot": name,
            "synonyms": list(spec.synonyms),
            "parent": spec.parent,
            "band": spec.band,
            "band_range": list(VERTICAL_BANDS[spec.band]),
            "side": expected_side(name),
            "required": name in REQUIRED_SLOTS,
        })
    return out
