import pytest

from conftest import convert_rows, make_skeleton
from services.bone_mapper import map_humanoid_bones
from services.llm_resolver import LlmSuggestion
from services.suggestion_merge import apply_suggestions


@pytest.fixture
def palm_skeleton():
    # LeftPalm under an unrelated parent: the heuristics leave leftHand empty
    return make_skeleton(convert_rows(left_hand_name="LeftPalm", left_hand_parent="Root"))


@pytest.fixture
def palm_mapping(palm_skeleton):
    return map_humanoid_bones(palm_skeleton)


def test_heuristics_leave_left_hand_empty(palm_mapping):
    assert palm_mapping.get("leftHand") is None
    assert "LeftPalm" in [b.name for b in palm_mapping.unmapped]


def test_valid_suggestion_fills_absent_slot(palm_skeleton, palm_mapping):
    merged, warnings = apply_suggestions(palm_skeleton, palm_mapping, [
        LlmSuggestion("leftHand", "LeftPalm", 0.8, "LeftPalm is the hand bone."),
    ])

    match = merged.get("leftHand")
    assert warnings == []
    assert match.source.name == "LeftPalm"
    assert match.confidence == 0.8
    assert match.confidence_level == "high"
    assert match.reasons == ("LeftPalm is the hand bone.",)
    assert "LeftPalm" not in [b.name for b in merged.unmapped]


def test_default_confidence_and_reason(palm_skeleton, palm_mapping):
    merged, _ = apply_suggestions(palm_skeleton, palm_mapping, [LlmSuggestion("leftHand", "LeftPalm")])
    match = merged.get("leftHand")
    assert match.confidence == 0.6
    assert match.confidence_level == "medium"
    assert match.reasons == ("external",)


def test_low_confidence_suggestion_is_kept_with_low_tier(palm_skeleton, palm_mapping):
    merged, _ = apply_suggestions(palm_skeleton, palm_mapping, [LlmSuggestion("leftHand", "LeftPalm", 0.2)])
    assert merged.get("leftHand").confidence_level == "low"


def test_existing_mapping_is_not_replaced(palm_skeleton, palm_mapping):
    original = palm_mapping.get("hips")
    merged, warnings = apply_suggestions(palm_skeleton, palm_mapping, [LlmSuggestion("hips", "LeftPalm", 0.9)])

    assert merged.get("hips") is original
    assert warnings == ["External resolver suggested hips, but mapping already exists."]


def test_unknown_bone_is_rejected(palm_skeleton, palm_mapping):
    merged, warnings = apply_suggestions(palm_skeleton, palm_mapping, [LlmSuggestion("leftHand", "Nope", 0.9)])
    assert merged.get("leftHand") is None
    assert warnings == ["External resolver suggested unknown source bone Nope."]


def test_missing_source_is_rejected(palm_skeleton, palm_mapping):
    merged, warnings = apply_suggestions(palm_skeleton, palm_mapping, [LlmSuggestion("leftHand", None)])
    assert merged.get("leftHand") is None
    assert warnings == ["External resolver did not provide a source for leftHand."]


def test_bad_suggestions_do_not_block_good_ones(palm_skeleton, palm_mapping):
    merged, warnings = apply_suggestions(palm_skeleton, palm_mapping, [
        LlmSuggestion("hips", "Hips"),
        LlmSuggestion("jaw", "Ghost"),
        LlmSuggestion("leftHand", "LeftPalm", 0.7),
    ])
    assert len(warnings) == 2
    assert merged.get("leftHand").source.name == "LeftPalm"


def test_source_bone_already_claimed_is_skipped(palm_skeleton, palm_mapping):
    merged, warnings = apply_suggestions(palm_skeleton, palm_mapping, [LlmSuggestion("leftHand", "Hips", 0.9)])
    assert merged.get("leftHand") is None
    assert warnings == ["External resolver suggested Hips for leftHand, but it is already mapped to hips."]


def test_same_batch_duplicate_source_first_wins(palm_skeleton, palm_mapping):
    merged, warnings = apply_suggestions(palm_skeleton, palm_mapping, [
        LlmSuggestion("leftHand", "LeftPalm", 0.8),
        LlmSuggestion("jaw", "LeftPalm", 0.9),
    ])
    assert merged.get("leftHand").source.name == "LeftPalm"
    assert merged.get("jaw") is None
    assert warnings == ["External resolver suggested LeftPalm for jaw, but it is already mapped to leftHand."]
    claimed = [id(b) for b in merged.claimed_bones()]
    assert len(claimed) == len(set(claimed))


def test_input_mapping_is_untouched(palm_skeleton, palm_mapping):
    before = palm_mapping.to_dict()
    merged, _ = apply_suggestions(palm_skeleton, palm_mapping, [LlmSuggestion("leftHand", "LeftPalm", 0.8)])
    assert palm_mapping.to_dict() == before
    assert merged is not palm_mapping
    assert palm_mapping.get("leftHand") is None


def test_unknown_slot_is_rejected(palm_skeleton, palm_mapping):
    merged, warnings = apply_suggestions(palm_skeleton, palm_mapping, [
        LlmSuggestion("tail", "LeftPalm", 0.9),
        LlmSuggestion("leftHand", "LeftPalm", 0.8),
    ])
    assert warnings == ["External resolver suggested unknown slot tail."]
    assert "tail" not in merged.matches
    assert set(merged.matches) == set(palm_mapping.matches)
    assert merged.get("leftHand").source.name == "LeftPalm"
