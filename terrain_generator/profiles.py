# terrain_generator/profiles.py

"""
================================================================================
TERRAIN PROFILE REGISTRY
================================================================================
Loads terrain profiles (one per biome) and generation parameters from a
human-editable document, validates them, and serves them to the classifier
and the chunk generator.

The active configuration is an immutable ProfileSet. A reload builds a brand
new ProfileSet and swaps it in with a single attribute assignment, so readers
either see the old snapshot or the new one, never a mix. A document that
fails validation never replaces the active snapshot.

Data Contract:
---------------
- Inputs:
    - A JSON document, or YAML when the file ends in .yaml/.yml:
        terrain_types:
          <name>:
            height_range: [min, max]
            noise_algorithms: [{kind, frequency, amplitude_factor, ...}, ...]
            biome_conditions: {elevation_min, moisture_range, default, ...}
            description: "..."
            features: [...]
        generation_parameters:
          chunk_variation_strength, edge_blend_margin, seed_multipliers,
          erosion_iterations, smoothing_passes, erosion_rate
- Outputs:
    - ProfileSet snapshots; TerrainProfile lookups; biome name matches.
- Side Effects: Reads the document from disk. Logs loads and rejected reloads.
- Invariants:
    - Every profile has min < max and at least one algorithm.
    - At most one profile is the default.
    - Profile order is document order.
================================================================================
"""

import json
import logging
import math
import os
import threading
from dataclasses import dataclass, field

import yaml

from . import config as DEFAULTS
from .algorithms import NoiseAlgorithm, parse_algorithm
from .errors import ConfigValidationError

_CONDITION_FIELDS = ("elevation", "temperature", "moisture", "jitter")

# Older documents used these names for the same parameters.
_PARAMETER_ALIASES = {
    "edge_blending_distance": "edge_blend_margin",
    "unique_seed_multipliers": "seed_multipliers",
}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class BiomeConditions:
    """Closed intervals over the classifier's fields. A missing bound is open."""
    elevation: tuple[float, float] | None = None
    temperature: tuple[float, float] | None = None
    moisture: tuple[float, float] | None = None
    jitter: tuple[float, float] | None = None
    default: bool = False

    def matches(self, elevation: float, temperature: float, moisture: float, jitter: float) -> bool:
        values = {"elevation": elevation, "temperature": temperature,
                  "moisture": moisture, "jitter": jitter}
        for name in _CONDITION_FIELDS:
            bounds = getattr(self, name)
            if bounds is not None and not bounds[0] <= values[name] <= bounds[1]:
                return False
        return True

    @classmethod
    def from_mapping(cls, data, path: str) -> "BiomeConditions":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigValidationError("biome_conditions must be a mapping", path)

        default = data.get("default", False)
        if not isinstance(default, bool):
            raise ConfigValidationError("'default' must be true or false", path)

        intervals = {}
        for name in _CONDITION_FIELDS:
            lo, hi = -math.inf, math.inf
            given = False
            for key in (f"{name}_min", f"{name}_max"):
                if key in data:
                    if not _is_number(data[key]):
                        raise ConfigValidationError(f"'{key}' must be a finite number", path)
                    given = True
                    if key.endswith("_min"):
                        lo = max(lo, float(data[key]))
                    else:
                        hi = min(hi, float(data[key]))
            key = f"{name}_range"
            if key in data:
                bounds = data[key]
                if (not isinstance(bounds, (list, tuple)) or len(bounds) != 2
                        or not all(_is_number(b) for b in bounds)):
                    raise ConfigValidationError(f"'{key}' must be a list of two numbers", path)
                if bounds[0] > bounds[1]:
                    raise ConfigValidationError(f"'{key}' lower bound exceeds upper bound", path)
                given = True
                lo = max(lo, float(bounds[0]))
                hi = min(hi, float(bounds[1]))
            if given:
                if lo > hi:
                    raise ConfigValidationError(f"{name} bounds are empty ({lo} > {hi})", path)
                intervals[name] = (lo, hi)

        return cls(default=default, **intervals)


@dataclass(frozen=True)
class TerrainProfile:
    name: str
    height_range: tuple[float, float]
    noise_algorithms: tuple[NoiseAlgorithm, ...]
    biome_conditions: BiomeConditions = field(default_factory=BiomeConditions)
    description: str = ""
    features: tuple[str, ...] = ()

    @property
    def span(self) -> float:
        return self.height_range[1] - self.height_range[0]

    @property
    def is_default(self) -> bool:
        return self.biome_conditions.default


@dataclass(frozen=True)
class GenerationParameters:
    chunk_variation_strength: float = DEFAULTS.DEFAULT_GENERATION_PARAMETERS["chunk_variation_strength"]
    edge_blend_margin: int = DEFAULTS.DEFAULT_GENERATION_PARAMETERS["edge_blend_margin"]
    seed_multipliers: tuple[int, ...] = tuple(DEFAULTS.DEFAULT_GENERATION_PARAMETERS["seed_multipliers"])
    erosion_iterations: int = DEFAULTS.DEFAULT_GENERATION_PARAMETERS["erosion_iterations"]
    smoothing_passes: int = DEFAULTS.DEFAULT_GENERATION_PARAMETERS["smoothing_passes"]
    erosion_rate: float = DEFAULTS.DEFAULT_GENERATION_PARAMETERS["erosion_rate"]

    @classmethod
    def from_mapping(cls, data, path: str = "generation_parameters") -> "GenerationParameters":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigValidationError("must be a mapping", path)
        data = dict(data)
        for alias, key in _PARAMETER_ALIASES.items():
            if alias in data:
                if key in data:
                    raise ConfigValidationError(f"both '{alias}' and '{key}' given", path)
                data[key] = data.pop(alias)

        kwargs = {}
        for key in ("chunk_variation_strength", "erosion_rate"):
            if key in data:
                if not _is_number(data[key]) or data[key] < 0:
                    raise ConfigValidationError(f"'{key}' must be a non-negative number", path)
                kwargs[key] = float(data[key])
        for key in ("edge_blend_margin", "erosion_iterations", "smoothing_passes"):
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ConfigValidationError(f"'{key}' must be a non-negative integer", path)
                kwargs[key] = value
        if "seed_multipliers" in data:
            multipliers = data["seed_multipliers"]
            if (not isinstance(multipliers, list) or not multipliers
                    or any(isinstance(m, bool) or not isinstance(m, int) for m in multipliers)):
                raise ConfigValidationError("'seed_multipliers' must be a non-empty list of integers", path)
            kwargs["seed_multipliers"] = tuple(multipliers)
        return cls(**kwargs)


@dataclass(frozen=True)
class ProfileSet:
    """An immutable, fully validated configuration snapshot."""
    profiles: tuple[TerrainProfile, ...]
    parameters: GenerationParameters
    version: int = 0
    source: str | None = None
    _by_name: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_by_name", {p.name: p for p in self.profiles})

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.profiles]

    @property
    def default_profile(self) -> TerrainProfile | None:
        for profile in self.profiles:
            if profile.is_default:
                return profile
        return None

    def resolve(self, name: str) -> TerrainProfile | None:
        return self._by_name.get(name)

    def match_biome(self, elevation: float, temperature: float, moisture: float,
                    jitter: float) -> str | None:
        """First matching non-default profile in document order, else the default."""
        for profile in self.profiles:
            if not profile.is_default and profile.biome_conditions.matches(
                    elevation, temperature, moisture, jitter):
                return profile.name
        default = self.default_profile
        return default.name if default is not None else None


def parse_profile(name: str, data, path: str) -> TerrainProfile:
    if not isinstance(data, dict):
        raise ConfigValidationError("profile must be a mapping", path)

    height_range = data.get("height_range")
    if (not isinstance(height_range, (list, tuple)) or len(height_range) != 2
            or not all(_is_number(v) for v in height_range)):
        raise ConfigValidationError("'height_range' must be a list of two finite numbers", path)
    low, high = float(height_range[0]), float(height_range[1])
    if low >= high:
        raise ConfigValidationError(f"'height_range' min {low} must be below max {high}", path)

    algorithms = data.get("noise_algorithms")
    if not isinstance(algorithms, list) or not algorithms:
        raise ConfigValidationError("'noise_algorithms' must be a non-empty list", path)
    parsed = tuple(parse_algorithm(entry, f"{path}.noise_algorithms[{i}]")
                   for i, entry in enumerate(algorithms))

    description = data.get("description", "")
    if not isinstance(description, str):
        raise ConfigValidationError("'description' must be a string", path)
    features = data.get("features", [])
    if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
        raise ConfigValidationError("'features' must be a list of strings", path)

    return TerrainProfile(
        name=str(data.get("name", name)),
        height_range=(low, high),
        noise_algorithms=parsed,
        biome_conditions=BiomeConditions.from_mapping(data.get("biome_conditions"),
                                                      f"{path}.biome_conditions"),
        description=description,
        features=tuple(features),
    )


def parse_document(document, version: int = 0, source: str | None = None) -> ProfileSet:
    """Validates a whole document and builds a ProfileSet. Raises ConfigValidationError."""
    if not isinstance(document, dict):
        raise ConfigValidationError("document root must be a mapping", source)

    terrain_types = document.get("terrain_types")
    if not isinstance(terrain_types, dict) or not terrain_types:
        raise ConfigValidationError("'terrain_types' must be a non-empty mapping", source)

    profiles = []
    seen = set()
    for name, data in terrain_types.items():
        profile = parse_profile(str(name), data, f"terrain_types.{name}")
        if profile.name in seen:
            raise ConfigValidationError(f"duplicate profile name '{profile.name}'", f"terrain_types.{name}")
        seen.add(profile.name)
        profiles.append(profile)

    defaults = [p.name for p in profiles if p.is_default]
    if len(defaults) > 1:
        raise ConfigValidationError(f"more than one default profile: {', '.join(defaults)}", "terrain_types")

    parameters = GenerationParameters.from_mapping(document.get("generation_parameters"))
    return ProfileSet(profiles=tuple(profiles), parameters=parameters, version=version, source=source)


def read_document(path: str):
    """Reads a JSON or YAML document. Parse errors become ConfigValidationError."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.endswith((".yaml", ".yml")):
                return yaml.safe_load(f)
            return json.load(f)
    except OSError as e:
        raise ConfigValidationError(f"cannot read document: {e}", path) from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigValidationError(f"cannot parse document: {e}", path) from e


class TerrainProfileRegistry:
    """
    Holds the active ProfileSet and reloads it when the source file changes.

    `refresh()` is cheap to call before every request: it only stats the file,
    and re-reads only when the mtime moves past the newest one already seen.
    A rejected document is logged once and remembered by its mtime, so the
    same broken file is not re-parsed until it is written again.
    """

    def __init__(self, path: str | None = None, logger: logging.Logger | None = None,
                 profile_set: ProfileSet | None = None):
        self.path = path
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._loaded_mtime = None
        self._failed_mtime = None
        self._active = profile_set

        if path is not None:
            self.load()
        elif profile_set is None:
            raise ValueError("TerrainProfileRegistry needs a path or a profile set")

    @classmethod
    def from_mapping(cls, document: dict, logger: logging.Logger | None = None) -> "TerrainProfileRegistry":
        """In-memory registry with no backing file, so no hot reload."""
        return cls(profile_set=parse_document(document, version=1), logger=logger)

    @classmethod
    def from_default_profiles(cls, logger: logging.Logger | None = None) -> "TerrainProfileRegistry":
        return cls(path=DEFAULTS.DEFAULT_PROFILE_PATH, logger=logger)

    # --- Snapshot access ---

    @property
    def snapshot(self) -> ProfileSet:
        return self._active

    @property
    def version(self) -> int:
        return self._active.version

    def resolve(self, name: str) -> TerrainProfile | None:
        return self._active.resolve(name)

    def match_biome(self, elevation: float, temperature: float, moisture: float,
                    jitter: float) -> str | None:
        return self._active.match_biome(elevation, temperature, moisture, jitter)

    # --- Loading ---

    def _stat_mtime(self) -> int:
        try:
            return os.stat(self.path).st_mtime_ns
        except OSError as e:
            raise ConfigValidationError(f"cannot stat document: {e}", self.path) from e

    def _advanced(self, mtime: int) -> bool:
        """True when mtime is newer than the last loaded or rejected document."""
        seen = [m for m in (self._loaded_mtime, self._failed_mtime) if m is not None]
        return not seen or mtime > max(seen)

    def _load_locked(self, mtime: int):
        document = read_document(self.path)
        version = self._active.version + 1 if self._active is not None else 1
        new_set = parse_document(document, version=version, source=self.path)
        self._active = new_set
        self._loaded_mtime = mtime
        self._failed_mtime = None
        self.logger.info(
            f"Loaded {len(new_set.profiles)} terrain profiles from {self.path} (version {version}): "
            f"{', '.join(new_set.names)}"
        )

    def load(self) -> ProfileSet:
        """Forces a re-read. Raises ConfigValidationError and keeps the old snapshot on failure."""
        if self.path is None:
            return self._active
        with self._lock:
            mtime = self._stat_mtime()
            try:
                self._load_locked(mtime)
            except ConfigValidationError:
                self._failed_mtime = mtime
                raise
            return self._active

    def refresh(self) -> bool:
        """Reloads if the file changed. Returns True when a new snapshot was installed."""
        if self.path is None:
            return False
        try:
            mtime = self._stat_mtime()
        except ConfigValidationError as e:
            self.logger.error(f"Terrain profile reload skipped: {e}")
            return False
        if not self._advanced(mtime):
            return False

        with self._lock:
            if not self._advanced(mtime):
                return False
            try:
                self._load_locked(mtime)
            except ConfigValidationError as e:
                self._failed_mtime = mtime
                self.logger.error(
                    f"Rejected terrain profile reload: {e}. Keeping version {self._active.version}."
                )
                return False
        return True
