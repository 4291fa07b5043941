from __future__ import annotations

"""
Configuration objects and loading utilities for the analytics engine.

Each algorithm family has a small dataclass with defaults. Every dataclass
exposes validate(), which raises InvalidConfig before any computation starts,
and from_mapping(), which accepts snake_case or camelCase keys so that
contract-style dictionaries ({"maxIterations": 50}) work unchanged.

An optional INI file groups all four sections:

    # analysis.ini
    [community]
    algorithm = leiden
    resolution = 1.2

    [hull]
    hull_type = concave
    concavity = 3

    [centrality]
    type = pagerank
    damping = 0.85

    [physics]
    repulsion_strength = 0.5
    max_displacement = 10
"""

import configparser
import logging
import math
import re
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..errors import InvalidConfig
from .constants import (
    DEFAULT_CENTRALITY_MAX_ITERATIONS,
    DEFAULT_COMMUNITY_MAX_ITERATIONS,
    DEFAULT_CONCAVITY,
    DEFAULT_DAMPING,
    DEFAULT_FALLBACK_RADIUS,
    DEFAULT_KATZ_ALPHA,
    DEFAULT_MAX_DISPLACEMENT,
    DEFAULT_MIN_MODULARITY_GAIN,
    DEFAULT_PHYSICS_DAMPING,
    DEFAULT_REPULSION_STRENGTH,
    DEFAULT_RESOLUTION,
    DEFAULT_TOLERANCE,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Variant tags
# ─────────────────────────────────────────────────────────────────────────────


class CommunityAlgorithm(str, Enum):
    LOUVAIN = "louvain"
    LEIDEN = "leiden"


class HullType(str, Enum):
    CONVEX = "convex"
    CONCAVE = "concave"


class CentralityType(str, Enum):
    PAGERANK = "pagerank"
    BETWEENNESS = "betweenness"
    CLOSENESS = "closeness"
    EIGENVECTOR = "eigenvector"
    DEGREE = "degree"
    KATZ = "katz"


class ComponentType(str, Enum):
    WEAK = "weak"
    STRONG = "strong"


def _as_enum(enum_cls: type, value: Any, field_name: str) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidConfig(f"{field_name}: unknown value {value!r} (expected one of: {allowed})") from None


def _camel_to_snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _coerce(value: Any, type_name: str, field_name: str) -> Any:
    """Coerce INI strings (and loose JSON values) to the declared field type."""
    if type_name == "bool":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in {"1", "true", "yes", "on"}:
            return True
        if text in {"0", "false", "no", "off"}:
            return False
        raise InvalidConfig(f"{field_name}: expected a boolean, got {value!r}")
    if type_name == "int":
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidConfig(f"{field_name}: expected an integer, got {value!r}") from None
    if type_name == "float":
        try:
            return float(value)
        except (TypeError, ValueError):
            raise InvalidConfig(f"{field_name}: expected a number, got {value!r}") from None
    return value


def _build_from_mapping(cls: type, data: Mapping[str, Any]) -> Any:
    known = {f.name: f for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for raw_key, value in data.items():
        key = _camel_to_snake(str(raw_key).strip())
        if key not in known:
            raise InvalidConfig(f"{cls.__name__}: unknown option {raw_key!r}")
        kwargs[key] = _coerce(value, str(known[key].type), key)
    try:
        cfg = cls(**kwargs)
    except TypeError as e:
        raise InvalidConfig(f"{cls.__name__}: {e}") from None
    cfg.validate()
    return cfg


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidConfig(message)


def _finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


# ─────────────────────────────────────────────────────────────────────────────
# Config dataclasses
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class CommunityDetectionConfig:
    """Configuration for Louvain / Leiden community detection."""

    algorithm: CommunityAlgorithm = CommunityAlgorithm.LOUVAIN
    resolution: float = DEFAULT_RESOLUTION  # higher → more, smaller communities
    weighted: bool = False
    max_iterations: int = DEFAULT_COMMUNITY_MAX_ITERATIONS
    min_modularity_gain: float = DEFAULT_MIN_MODULARITY_GAIN

    def validate(self) -> "CommunityDetectionConfig":
        self.algorithm = _as_enum(CommunityAlgorithm, self.algorithm, "algorithm")
        _require(_finite(self.resolution) and self.resolution > 0, f"resolution must be > 0, got {self.resolution}")
        _require(int(self.max_iterations) >= 1, f"max_iterations must be >= 1, got {self.max_iterations}")
        _require(
            _finite(self.min_modularity_gain) and self.min_modularity_gain >= 0,
            f"min_modularity_gain must be >= 0, got {self.min_modularity_gain}",
        )
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CommunityDetectionConfig":
        return _build_from_mapping(cls, data)


@dataclass
class HullConfig:
    """Configuration for community boundary polygons."""

    hull_type: HullType = HullType.CONVEX
    concavity: float = DEFAULT_CONCAVITY  # higher → tighter concave fit
    fallback_radius: float = DEFAULT_FALLBACK_RADIUS

    def validate(self) -> "HullConfig":
        self.hull_type = _as_enum(HullType, self.hull_type, "hull_type")
        _require(_finite(self.concavity) and self.concavity > 0, f"concavity must be > 0, got {self.concavity}")
        _require(
            _finite(self.fallback_radius) and self.fallback_radius > 0,
            f"fallback_radius must be > 0, got {self.fallback_radius}",
        )
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HullConfig":
        return _build_from_mapping(cls, data)


@dataclass
class CentralityConfig:
    """Configuration for centrality ranking; `type` has no default."""

    type: CentralityType
    normalized: bool = True
    max_iterations: int = DEFAULT_CENTRALITY_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE
    damping: float = DEFAULT_DAMPING
    weighted: bool = False
    katz_alpha: float = DEFAULT_KATZ_ALPHA
    degree_mode: str = "total"  # degree centrality only: total, in or out

    def validate(self) -> "CentralityConfig":
        self.type = _as_enum(CentralityType, self.type, "type")
        _require(int(self.max_iterations) >= 1, f"max_iterations must be >= 1, got {self.max_iterations}")
        _require(_finite(self.tolerance) and self.tolerance >= 0, f"tolerance must be >= 0, got {self.tolerance}")
        _require(_finite(self.damping) and 0.0 <= self.damping <= 1.0, f"damping must be in [0, 1], got {self.damping}")
        _require(_finite(self.katz_alpha) and self.katz_alpha > 0, f"katz_alpha must be > 0, got {self.katz_alpha}")
        _require(self.degree_mode in ("total", "in", "out"), f"degree_mode must be total, in or out, got {self.degree_mode!r}")
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CentralityConfig":
        if "type" not in data:
            raise InvalidConfig("CentralityConfig: 'type' is required")
        return _build_from_mapping(cls, data)


@dataclass
class BoundaryPhysicsConfig:
    """Configuration for hull overlap resolution."""

    enabled: bool = True
    repulsion_strength: float = DEFAULT_REPULSION_STRENGTH  # 0.0 - 1.0
    damping: float = DEFAULT_PHYSICS_DAMPING  # velocity retained per tick
    max_displacement: float = DEFAULT_MAX_DISPLACEMENT  # per node, per tick

    def validate(self) -> "BoundaryPhysicsConfig":
        _require(
            _finite(self.repulsion_strength) and 0.0 <= self.repulsion_strength <= 1.0,
            f"repulsion_strength must be in [0, 1], got {self.repulsion_strength}",
        )
        _require(_finite(self.damping) and 0.0 <= self.damping <= 1.0, f"damping must be in [0, 1], got {self.damping}")
        _require(
            _finite(self.max_displacement) and self.max_displacement > 0,
            f"max_displacement must be > 0, got {self.max_displacement}",
        )
        return self

    def merged(self, partial: Mapping[str, Any]) -> "BoundaryPhysicsConfig":
        """Return a validated copy with `partial` applied on top."""
        updates: Dict[str, Any] = {}
        known = {f.name: f for f in fields(self)}
        for raw_key, value in partial.items():
            key = _camel_to_snake(str(raw_key))
            if key not in known:
                raise InvalidConfig(f"BoundaryPhysicsConfig: unknown option {raw_key!r}")
            updates[key] = _coerce(value, str(known[key].type), key)
        return replace(self, **updates).validate()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BoundaryPhysicsConfig":
        return _build_from_mapping(cls, data)


@dataclass
class AnalysisConfig:
    """All four sections of an analysis.ini file."""

    community: CommunityDetectionConfig = field(default_factory=CommunityDetectionConfig)
    hull: HullConfig = field(default_factory=HullConfig)
    centrality: Optional[CentralityConfig] = None
    physics: BoundaryPhysicsConfig = field(default_factory=BoundaryPhysicsConfig)


# ─────────────────────────────────────────────────────────────────────────────
# INI loading
# ─────────────────────────────────────────────────────────────────────────────


def load_analysis_config(path: Path) -> AnalysisConfig:
    """
    Load an analysis.ini file.

    Parameters
    ----------
    path : Path
        INI file with optional [community], [hull], [centrality] and
        [physics] sections.

    Returns
    -------
    AnalysisConfig
        Defaults for any missing section. A missing file yields all defaults.
    """
    if not path.exists():
        logger.info("No analysis config found at %s – using defaults.", path)
        return AnalysisConfig()

    parser = configparser.ConfigParser()
    try:
        parser.read(path, encoding="utf-8")
    except configparser.Error as e:
        raise InvalidConfig(f"Could not parse {path}: {e}") from None

    cfg = AnalysisConfig()
    for section in parser.sections():
        values = dict(parser.items(section))
        if section == "community":
            cfg.community = CommunityDetectionConfig.from_mapping(values)
        elif section == "hull":
            cfg.hull = HullConfig.from_mapping(values)
        elif section == "centrality":
            cfg.centrality = CentralityConfig.from_mapping(values)
        elif section == "physics":
            cfg.physics = BoundaryPhysicsConfig.from_mapping(values)
        else:
            logger.warning("Skipping unknown section [%s] in %s", section, path)

    return cfg
