"""
Configuration management for gesichtool.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - Every tunable has a safe default except the input images and the
      output directory, which must always be given.
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No mutation after load; the runner only reads the record.
"""

import enum
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from gesichtool.geometry import Size, parse_size

logger = logging.getLogger(__name__)

CASCADE_RESOURCE = "haarcascades/haarcascade_frontalface_default.xml"


class DetectionMode(str, enum.Enum):
    """Face detection backend. Fixed for an entire run."""

    CASCADE = "opencv"
    HOG = "dlib"


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectionConfig:
    """Detector backend selection and cascade tunables.

    Attributes:
        mode: Which backend to construct per worker.
        min_neighbors: CASCADE only. Overlapping windows needed to accept a face.
        min_size: CASCADE only. Smallest face considered; None means no floor.
                  Defaults to the output size so small faces are not upscaled.
        max_size: CASCADE only. Largest face considered; None means no ceiling.
        scale_factor: CASCADE only. Image pyramid step for multi-scale search.
        cascade_path: CASCADE only. Explicit classifier XML, bypassing discovery.
    """

    mode: DetectionMode = DetectionMode.HOG
    min_neighbors: int = 3
    min_size: Optional[Size] = Size(512, 512)
    max_size: Optional[Size] = None
    scale_factor: float = 1.1
    cascade_path: Optional[str] = None


@dataclass(frozen=True)
class InputConfig:
    """Input images, in the order given on the command line."""

    paths: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        directory: Directory where face crops are written. Required.
        size: Dimensions of every written crop.
        jpeg_quality: JPEG encoder quality (1-100).
    """

    directory: Optional[str] = None
    size: Size = Size(512, 512)
    jpeg_quality: int = 95


@dataclass(frozen=True)
class RunConfig:
    """Execution settings.

    Attributes:
        jobs: Maximum number of concurrently running workers.
              None means the number of CPUs.
        verbose: Emit a progress line per image.
    """

    jobs: Optional[int] = None
    verbose: bool = False

    @property
    def parallelism(self) -> int:
        """Effective worker bound."""
        if self.jobs is not None:
            return self.jobs
        return os.cpu_count() or 1


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    detection: DetectionConfig = field(default_factory=DetectionConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    run: RunConfig = field(default_factory=RunConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if not config.input.paths:
        raise ValueError("no input images given")

    if not config.output.directory:
        raise ValueError("no output directory given")

    if not isinstance(config.detection.mode, DetectionMode):
        raise ValueError(
            f"Invalid detection.mode: '{config.detection.mode}'. "
            f"Must be one of {[m.value for m in DetectionMode]}."
        )

    if config.detection.mode is DetectionMode.CASCADE:
        # Cascade tunables; the HOG backend ignores them
        if config.detection.min_neighbors < 0:
            raise ValueError(
                f"detection.min_neighbors must be non-negative, "
                f"got {config.detection.min_neighbors}."
            )

        if config.detection.scale_factor <= 1.0:
            raise ValueError(
                f"detection.scale_factor must be greater than 1.0, "
                f"got {config.detection.scale_factor}."
            )

    if not (1 <= config.output.jpeg_quality <= 100):
        raise ValueError(
            f"output.jpeg_quality must be in [1, 100], "
            f"got {config.output.jpeg_quality}."
        )

    if config.run.jobs is not None and config.run.jobs < 1:
        raise ValueError(f"run.jobs must be at least 1, got {config.run.jobs}.")


# ---------------------------------------------------------------------------
# Raw value conversion
# ---------------------------------------------------------------------------

_SECTIONS = ("detection", "input", "output", "run")


def _check_sections(raw: dict, source: str) -> dict:
    """Ensure every known section is a mapping; null sections become empty."""
    for section in _SECTIONS:
        value = raw.get(section)
        if value is None:
            raw[section] = {}
        elif not isinstance(value, dict):
            raise ValueError(
                f"Section '{section}' in {source} must be a mapping, "
                f"got {type(value).__name__}."
            )
    return raw


def _convert(section: str, key: str, value, cast):
    """Apply `cast` to a raw value, reporting failures as ValueError."""
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid {section}.{key}: {value!r} ({e})") from e


def _parse_size_value(value) -> Optional[Size]:
    """Convert a YAML/env value into a Size.

    Accepts a Size, a "WxH" string, or a two-element list. None and the
    strings "none"/"" mean unset.
    """
    if value is None or isinstance(value, Size):
        return value
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ValueError(f"Expected 2 values for a size, got {len(value)}: {value}")
        return Size(int(value[0]), int(value[1]))
    text = str(value).strip()
    if text.lower() in ("", "none"):
        return None
    return parse_size(text)


def _parse_mode(value) -> DetectionMode:
    if isinstance(value, DetectionMode):
        return value
    text = str(value).strip().lower()
    aliases = {"opencv": DetectionMode.CASCADE, "cascade": DetectionMode.CASCADE,
               "dlib": DetectionMode.HOG, "hog": DetectionMode.HOG}
    if text not in aliases:
        raise ValueError(f"must be one of {sorted(aliases)}")
    return aliases[text]


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _parse_paths(value) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"expected a list of paths, got {type(value).__name__}")
    return tuple(str(p) for p in value)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = _convert("detection", "mode", raw["mode"], _parse_mode)
    if "min_neighbors" in raw:
        kwargs["min_neighbors"] = _convert("detection", "min_neighbors", raw["min_neighbors"], int)
    if "min_size" in raw:
        kwargs["min_size"] = _convert("detection", "min_size", raw["min_size"], _parse_size_value)
    if "max_size" in raw:
        kwargs["max_size"] = _convert("detection", "max_size", raw["max_size"], _parse_size_value)
    if "scale_factor" in raw:
        kwargs["scale_factor"] = _convert("detection", "scale_factor", raw["scale_factor"], float)
    if raw.get("cascade_path") is not None:
        kwargs["cascade_path"] = str(raw["cascade_path"])
    return DetectionConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw dict."""
    kwargs = {}
    if "paths" in raw:
        kwargs["paths"] = _convert("input", "paths", raw["paths"], _parse_paths)
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw dict."""
    kwargs = {}
    if raw.get("directory") is not None:
        kwargs["directory"] = str(raw["directory"])
    if "size" in raw:
        size = _convert("output", "size", raw["size"], _parse_size_value)
        if size is None:
            raise ValueError("output.size cannot be unset.")
        kwargs["size"] = size
    if "jpeg_quality" in raw:
        kwargs["jpeg_quality"] = _convert("output", "jpeg_quality", raw["jpeg_quality"], int)
    return OutputConfig(**kwargs)


def _build_run_config(raw: dict) -> RunConfig:
    """Build RunConfig from a raw dict."""
    kwargs = {}
    if raw.get("jobs") is not None:
        kwargs["jobs"] = _convert("run", "jobs", raw["jobs"], int)
    if "verbose" in raw:
        kwargs["verbose"] = _parse_bool(raw["verbose"])
    return RunConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "GESICHTOOL_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        GESICHTOOL_DETECTION_MODE=opencv
        GESICHTOOL_OUTPUT_SIZE=256x256
    """
    env_map = {
        f"{_ENV_PREFIX}DETECTION_MODE": ("detection", "mode"),
        f"{_ENV_PREFIX}DETECTION_MIN_NEIGHBORS": ("detection", "min_neighbors"),
        f"{_ENV_PREFIX}DETECTION_MIN_SIZE": ("detection", "min_size"),
        f"{_ENV_PREFIX}DETECTION_MAX_SIZE": ("detection", "max_size"),
        f"{_ENV_PREFIX}DETECTION_CASCADE_PATH": ("detection", "cascade_path"),
        f"{_ENV_PREFIX}OUTPUT_DIRECTORY": ("output", "directory"),
        f"{_ENV_PREFIX}OUTPUT_SIZE": ("output", "size"),
        f"{_ENV_PREFIX}OUTPUT_JPEG_QUALITY": ("output", "jpeg_quality"),
        f"{_ENV_PREFIX}RUN_JOBS": ("run", "jobs"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


def _merge(base: dict, overrides: Dict[str, Dict[str, Any]]) -> dict:
    """Overlay per-section override dicts onto the raw config."""
    for section, values in overrides.items():
        base.setdefault(section, {}).update(values)
    return base


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        overrides (CLI) > Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file, or None.
        overrides: Section → key → value mapping applied last, e.g.
                   {"output": {"directory": "out/"}}.

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid or a required
                    value (inputs, output directory) is missing.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit --config."
            )

        logger.debug("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {resolved} must contain a mapping.")
        raw = _check_sections(raw, str(resolved))

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Layer 3: CLI overrides ---
    if overrides:
        raw = _merge(raw, overrides)

    # --- Build typed configs ---
    config = AppConfig(
        detection=_build_detection_config(raw.get("detection") or {}),
        input=_build_input_config(raw.get("input") or {}),
        output=_build_output_config(raw.get("output") or {}),
        run=_build_run_config(raw.get("run") or {}),
    )

    # --- Validate ---
    _validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config
