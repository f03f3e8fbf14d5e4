import pytest

from services.bone_mapper import SourceBone
from services.bone_scoring import (
    detect_side,
    normalize_bone_name,
    score_candidate,
    score_name,
    score_side,
    score_spatial,
    score_structure,
    vertical_bounds,
)


def bone(name, parent=None, pos=(0.0, 0.0, 0.0)):
    return SourceBone(name, parent, pos)


class TestNormalizeBoneName:

    @pytest.mark.parametrize("raw,expected", [
        ("mixamorig:LeftArm", "leftarm"),
        ("mixamorig_LeftArm", "leftarm"),
        ("Armature:Hips", "hips"),
        ("Bip01_L_Thigh", "lthigh"),
        ("bip:Spine", "spine"),
        ("  Left Hand.001 ", "lefthand001"),
        ("hand.R", "handr"),
    ])
    def test_strips_prefixes_and_separators(self, raw, expected):
        assert normalize_bone_name(raw) == expected

    @pytest.mark.parametrize("raw", ["mixamorig:LeftArm", "Bip01_L_Thigh", "hand.R", "Spine_02"])
    def test_idempotent(self, raw):
        once = normalize_bone_name(raw)
        assert normalize_bone_name(once) == once


class TestDetectSide:

    @pytest.mark.parametrize("name,side", [
        ("LeftHand", "left"),
        ("upperarm_right", "right"),
        ("hand.L", "left"),
        ("hand_R", "right"),
        ("L_Thigh", "left"),
        ("r foot", "right"),
        ("Spine", None),
        ("Head", None),
    ])
    def test_name_tokens(self, name, side):
        assert detect_side(name) == side


class TestScoreName:

    def test_synonym_is_full_score(self):
        assert score_name("mixamorig:LeftArm", "leftUpperArm") == 1.0
        assert score_name("LeftUpperArm", "leftUpperArm") == 1.0
        assert score_name("Pelvis", "hips") == 1.0

    def test_synonym_substring(self):
        assert score_name("LeftArmTwist", "leftUpperArm") == 0.75
        assert score_name("Spine2", "spine") == 0.75

    def test_same_name_scores_differently_per_slot(self):
        assert score_name("Spine2", "chest") == 1.0

    def test_unrelated(self):
        assert score_name("Tail01", "head") == 0.0


class TestScoreStructure:

    def test_parent_synonym(self):
        assert score_structure(bone("Spine", "mixamorig:Hips"), "spine") == 1.0

    def test_parent_substring(self):
        assert score_structure(bone("Spine", "HipsCtrl"), "spine") == 0.5

    def test_no_parent(self):
        assert score_structure(bone("Spine", None), "spine") == 0.0

    def test_slot_without_expected_parent(self):
        assert score_structure(bone("Hips", "Root"), "hips") == 0.0

    def test_dangling_parent_name_scores_zero(self):
        assert score_structure(bone("Spine", "Nowhere"), "spine") == 0.0


class TestScoreSpatial:

    def test_inside_band(self):
        assert score_spatial(bone("Head", pos=(0, 2.0, 0)), "head", (0.0, 2.0)) == 1.0

    def test_near_band_edge(self):
        # y = 0.65, high band starts at 0.75
        assert score_spatial(bone("Head", pos=(0, 1.3, 0)), "head", (0.0, 2.0)) == 0.5

    def test_far_from_band(self):
        assert score_spatial(bone("Head", pos=(0, 0.2, 0)), "head", (0.0, 2.0)) == 0.0

    def test_flat_skeleton_does_not_divide_by_zero(self):
        b = bone("Foot", pos=(0, 1.0, 0))
        assert score_spatial(b, "leftFoot", (1.0, 1.0)) == 1.0
        assert score_spatial(b, "head", (1.0, 1.0)) == 0.0


class TestScoreSide:

    def test_name_wins_over_position(self):
        assert score_side(bone("LeftHand", pos=(1.0, 0, 0)), "leftHand") == 1.0
        assert score_side(bone("LeftHand", pos=(1.0, 0, 0)), "rightHand") == 0.0

    def test_position_fallback(self):
        assert score_side(bone("Bone", pos=(-1.0, 0, 0)), "leftHand") == 1.0
        assert score_side(bone("Bone", pos=(1.0, 0, 0)), "leftHand") == 0.0

    def test_center_slots_score_zero(self):
        assert score_side(bone("LeftHand"), "head") == 0.0


def test_vertical_bounds(biped):
    assert vertical_bounds(biped.bones) == (pytest.approx(0.1), pytest.approx(1.8))
    assert vertical_bounds([]) == (0.0, 0.0)


def test_score_candidate_bundles_signals(biped):
    right_foot = biped.find("RightFoot")
    scores = score_candidate(right_foot, "rightFoot", vertical_bounds(biped.bones))
    assert scores == (1.0, 1.0, 1.0, 1.0)
