"""
YAML-backed store for camera and game calibration profiles.

Layout under the store root:
    cameras/<id>.yaml   CameraProfile
    games/<id>.yaml     GameProfile
    active.yaml         ActiveProfile (which pair the next run uses)
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from models.drain_event import Lane
from models.errors import ConfigurationError, ProfileNotFound
from models.profile import ActiveProfile, CameraProfile, GameProfile, Polygon

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def sanitize_profile_id(profile_id: str) -> str:
    """Turn a profile id into a safe, lower-case file stem."""
    parts = [p.strip(".") for p in _UNSAFE_CHARS.split(str(profile_id))]
    stem = "-".join(p for p in parts if p).lower()
    if not stem:
        raise ConfigurationError(f"Invalid profile id: {profile_id!r}")
    return stem


def resolve_lane_regions(
    game: GameProfile,
    required: Sequence[str] = ("L", "C", "R"),
    aliases: Optional[Mapping[str, str]] = None,
) -> Dict[Lane, Polygon]:
    """
    Map a game profile's named regions onto lanes.

    Region keys may be lane codes ("L") or aliases ("leftOutlane").
    Required lanes come first, in the given order; other recognised lanes
    follow in profile order. Unrecognised region names are ignored.

    Raises:
        ConfigurationError: If a required lane has no region.
    """
    aliases = aliases or {}
    found: Dict[Lane, Polygon] = {}
    for name, polygon in game.regions.items():
        code = aliases.get(name, name)
        try:
            lane = Lane.parse(code)
        except ValueError:
            logging.debug(f"Game profile '{game.id}': ignoring region '{name}'")
            continue
        if lane in found:
            logging.warning(f"Game profile '{game.id}': duplicate region for lane {lane.value}, keeping first")
            continue
        found[lane] = polygon

    ordered: Dict[Lane, Polygon] = {}
    for code in required:
        lane = Lane.parse(code)
        if lane not in found:
            raise ConfigurationError(
                f"Game profile '{game.id}' has no region for required lane {lane.value}"
            )
        ordered[lane] = found[lane]
    for lane, polygon in found.items():
        ordered.setdefault(lane, polygon)
    return ordered


class ProfileStore:
    """
    Reads and writes calibration profiles.

    Directories are created on first use.
    """

    def __init__(self, root: str):
        self.root = root
        self.cameras_dir = os.path.join(root, "cameras")
        self.games_dir = os.path.join(root, "games")
        self.active_path = os.path.join(root, "active.yaml")

    def _ensure_dirs(self) -> None:
        os.makedirs(self.cameras_dir, exist_ok=True)
        os.makedirs(self.games_dir, exist_ok=True)

    @staticmethod
    def _read_yaml(path: str) -> Dict[str, Any]:
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping")
        return data

    @staticmethod
    def _write_yaml(path: str, data: Dict[str, Any]) -> None:
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def _list_dir(self, directory: str) -> List[Dict[str, Any]]:
        if not os.path.isdir(directory):
            return []
        items = []
        for filename in sorted(os.listdir(directory)):
            if not filename.endswith((".yaml", ".yml")):
                continue
            path = os.path.join(directory, filename)
            try:
                items.append(self._read_yaml(path))
            except ConfigurationError as e:
                logging.warning(f"Skipping unreadable profile {path}: {e}")
        return items

    def list_profiles(self) -> Dict[str, Any]:
        """All stored profiles plus the active selection (or None)."""
        active = None
        if os.path.exists(self.active_path):
            active = self._read_yaml(self.active_path)
        return {
            "cameras": self._list_dir(self.cameras_dir),
            "games": self._list_dir(self.games_dir),
            "active": active,
        }

    def load_camera(self, profile_id: str) -> CameraProfile:
        path = os.path.join(self.cameras_dir, f"{sanitize_profile_id(profile_id)}.yaml")
        if not os.path.exists(path):
            raise ProfileNotFound(f"Camera profile not found: {profile_id}")
        return CameraProfile.from_dict(self._read_yaml(path))

    def load_game(self, profile_id: str) -> GameProfile:
        path = os.path.join(self.games_dir, f"{sanitize_profile_id(profile_id)}.yaml")
        if not os.path.exists(path):
            raise ProfileNotFound(f"Game profile not found: {profile_id}")
        return GameProfile.from_dict(self._read_yaml(path))

    def get_active(self) -> ActiveProfile:
        if not os.path.exists(self.active_path):
            raise ConfigurationError(f"No active profile selected ({self.active_path} missing)")
        return ActiveProfile.from_dict(self._read_yaml(self.active_path))

    def load_active(self) -> Tuple[CameraProfile, GameProfile]:
        """The (camera, game) pair named by active.yaml."""
        active = self.get_active()
        return self.load_camera(active.camera_id), self.load_game(active.game_id)

    def save_camera(self, profile: CameraProfile) -> str:
        self._ensure_dirs()
        path = os.path.join(self.cameras_dir, f"{sanitize_profile_id(profile.id)}.yaml")
        self._write_yaml(path, profile.to_dict())
        logging.info(f"Saved camera profile '{profile.id}' to {path}")
        return path

    def save_game(self, profile: GameProfile) -> str:
        self._ensure_dirs()
        path = os.path.join(self.games_dir, f"{sanitize_profile_id(profile.id)}.yaml")
        self._write_yaml(path, profile.to_dict())
        logging.info(f"Saved game profile '{profile.id}' to {path}")
        return path

    def activate(self, active: ActiveProfile) -> None:
        os.makedirs(self.root, exist_ok=True)
        self._write_yaml(self.active_path, active.to_dict())
        logging.info(f"Activated camera='{active.camera_id}' game='{active.game_id}'")
