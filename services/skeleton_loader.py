# services/skeleton_loader.py
"""
Read a scene description (JSON dump of skinned meshes + their skeletons) and
pick the skeleton to map.

Accepted layouts:
  {"skeletons": [{"bones": [...]}, ...], "meshes": [{"name", "skeleton", "vertexCount"}]}
  {"bones": [...]}                       # single skeleton, no meshes
Bone: {"name": str, "parent": str | null, "position": [x, y, z] | {"x", "y", "z"}}
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from services.bone_mapper import Skeleton, SourceBone
from services.errors import SceneFormatError, SkeletonNotFoundError

LOG = logging.getLogger(__name__)


class BoneIn(BaseModel):
    name: Optional[str] = None
    parent: Optional[str] = None
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @field_validator("position", mode="before")
    @classmethod
    def _xyz(cls, v):
        if isinstance(v, dict):
            return (v.get("x", 0.0), v.get("y", 0.0), v.get("z", 0.0))
        return v


class SkeletonIn(BaseModel):
    bones: List[BoneIn] = []


class MeshIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    skeleton: Optional[int] = None
    vertex_count: int = Field(0, alias="vertexCount")


class SceneIn(BaseModel):
    skeletons: List[SkeletonIn] = []
    meshes: List[MeshIn] = []


@dataclass(frozen=True)
class MeshInfo:
    name: str
    skeleton_index: Optional[int]
    vertex_count: int


@dataclass(frozen=True)
class SceneLoadResult:
    skeletons: Tuple[Skeleton, ...] = ()
    meshes: Tuple[MeshInfo, ...] = ()
    # every bone name present in the scene, across skeletons
    bone_names: FrozenSet[str] = field(default_factory=frozenset)


def _clean_name(value: Optional[str], fallback: str) -> str:
    trimmed = value.strip() if value else ""
    return trimmed or fallback


def _to_skeleton(skel: SkeletonIn) -> Skeleton:
    bones = []
    for i, b in enumerate(skel.bones):
        parent = _clean_name(b.parent, f"Bone_{i}_parent") if b.parent is not None else None
        bones.append(SourceBone(
            name=_clean_name(b.name, f"Bone_{i}"),
            parent_name=parent,
            position=tuple(float(c) for c in b.position),
        ))
    return Skeleton.from_bones(bones)


def parse_scene(data: Union[Dict[str, Any], Any]) -> SceneLoadResult:
    if not isinstance(data, dict):
        raise SceneFormatError("scene description must be a JSON object")
    if "bones" in data and "skeletons" not in data:
        data = {"skeletons": [{"bones": data["bones"]}], "meshes": data.get("meshes", [])}
    try:
        scene = SceneIn.model_validate(data)
    except ValidationError as e:
        raise SceneFormatError(f"invalid scene description: {e}")

    skeletons = tuple(_to_skeleton(s) for s in scene.skeletons)
    meshes = tuple(
        MeshInfo(_clean_name(m.name, "SkinnedMesh"), m.skeleton, m.vertex_count)
        for m in scene.meshes
    )
    names = frozenset(b.name for s in skeletons for b in s.bones)
    LOG.info("scene: %d skeletons, %d meshes, %d bones", len(skeletons), len(meshes), len(names))
    return SceneLoadResult(skeletons=skeletons, meshes=meshes, bone_names=names)


def load_scene(path) -> SceneLoadResult:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Scene file not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SceneFormatError(f"{p} is not valid JSON: {e}")
    return parse_scene(data)


def _require_bones(skeleton: Skeleton) -> Skeleton:
    if not skeleton.bones:
        raise SkeletonNotFoundError("Selected skeleton has no bones.")
    return skeleton


def select_skeleton(load_result: SceneLoadResult) -> Skeleton:
    """
    Skeleton backing the densest skinned mesh; otherwise the one with the most bones.
    """
    if not load_result.skeletons:
        raise SkeletonNotFoundError("No skeletons found in scene.")

    skinned = [m for m in load_result.meshes if m.skeleton_index is not None]
    if skinned:
        # stable sort keeps file order among equal vertex counts
        densest = sorted(skinned, key=lambda m: m.vertex_count, reverse=True)[0]
        if 0 <= densest.skeleton_index < len(load_result.skeletons):
            return _require_bones(load_result.skeletons[densest.skeleton_index])
        LOG.warning("mesh %s points at missing skeleton %s", densest.name, densest.skeleton_index)

    best = load_result.skeletons[0]
    for candidate in load_result.skeletons[1:]:
        if len(candidate.bones) > len(best.bones):
            best = candidate
    return _require_bones(best)
