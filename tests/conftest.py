"""
Shared skeleton fixtures.

`biped_bones` is a typical Mixamo-style export: no upperChest, no shoulders,
arms hang straight off the chest. `convert_scene` is the flatter layout used by
the end-to-end conversion tests (legs below the hips, Y may be negative).
"""
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from services.bone_mapper import Skeleton, SourceBone


BIPED = [
    ("Hips", None, (0, 1, 0)),
    ("Spine", "Hips", (0, 1.2, 0)),
    ("Chest", "Spine", (0, 1.4, 0)),
    ("Neck", "Chest", (0, 1.6, 0)),
    ("Head", "Neck", (0, 1.8, 0)),
    ("LeftArm", "Chest", (-0.5, 1.4, 0)),
    ("LeftForeArm", "LeftArm", (-0.8, 1.3, 0)),
    ("LeftHand", "LeftForeArm", (-1.0, 1.2, 0)),
    ("RightArm", "Chest", (0.5, 1.4, 0)),
    ("RightForeArm", "RightArm", (0.8, 1.3, 0)),
    ("RightHand", "RightForeArm", (1.0, 1.2, 0)),
    ("LeftUpLeg", "Hips", (-0.3, 0.9, 0)),
    ("LeftLeg", "LeftUpLeg", (-0.3, 0.5, 0)),
    ("LeftFoot", "LeftLeg", (-0.3, 0.1, 0)),
    ("RightUpLeg", "Hips", (0.3, 0.9, 0)),
    ("RightLeg", "RightUpLeg", (0.3, 0.5, 0)),
    ("RightFoot", "RightLeg", (0.3, 0.1, 0)),
]

CONVERT = [
    ("Hips", None, (0, 0, 0)),
    ("Spine", "Hips", (0, 0.5, 0)),
    ("Head", "Spine", (0, 1.5, 0)),
    ("LeftUpperArm", "Spine", (-0.3, 1.2, 0)),
    ("LeftLowerArm", "LeftUpperArm", (-0.6, 1.1, 0)),
    ("LeftHand", "LeftLowerArm", (-0.8, 1.0, 0)),
    ("RightUpperArm", "Spine", (0.3, 1.2, 0)),
    ("RightLowerArm", "RightUpperArm", (0.6, 1.1, 0)),
    ("RightHand", "RightLowerArm", (0.8, 1.0, 0)),
    ("LeftUpperLeg", "Hips", (-0.2, -0.5, 0)),
    ("LeftLowerLeg", "LeftUpperLeg", (-0.2, -1.0, 0)),
    ("LeftFoot", "LeftLowerLeg", (-0.2, -1.2, 0)),
    ("RightUpperLeg", "Hips", (0.2, -0.5, 0)),
    ("RightLowerLeg", "RightUpperLeg", (0.2, -1.0, 0)),
    ("RightFoot", "RightLowerLeg", (0.2, -1.2, 0)),
]


def make_skeleton(rows):
    return Skeleton.from_bones([SourceBone(n, p, tuple(float(c) for c in pos)) for n, p, pos in rows])


def scene_dict(rows, vertex_count=1024):
    return {
        "skeletons": [{
            "bones": [{"name": n, "parent": p, "position": list(pos)} for n, p, pos in rows],
        }],
        "meshes": [{"name": "SkinnedMesh", "skeleton": 0, "vertexCount": vertex_count}],
    }


def convert_rows(left_hand_name="LeftHand", left_hand_parent=None):
    rows = []
    for name, parent, pos in CONVERT:
        if name == "LeftHand":
            rows.append((left_hand_name, left_hand_parent or parent, pos))
        else:
            rows.append((name, parent, pos))
    return rows


@pytest.fixture
def biped():
    return make_skeleton(BIPED)


@pytest.fixture
def convert_skeleton_rows():
    return convert_rows


@pytest.fixture
def write_scene(tmp_path):
    """Writes a scene description JSON and returns its path."""
    def _write(rows, name="avatar.scene.json", vertex_count=1024):
        p = tmp_path / name
        p.write_text(json.dumps(scene_dict(rows, vertex_count)), encoding="utf-8")
        return p
    return _write
