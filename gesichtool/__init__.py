"""
gesichtool — extract faces from still images into fixed-size JPEG crops.

Public API:
    - BatchRunner: Runs detection and extraction over a batch of images.
    - load_config: Builds the frozen AppConfig record.
    - create_detector: Constructs a detector for a configured backend.
    - Rectangle, Size: Geometry value types.

Usage:
    from gesichtool import BatchRunner, load_config

    config = load_config(overrides={
        "input": {"paths": ["portrait.jpg"]},
        "output": {"directory": "faces/"},
    })
    summary = BatchRunner(config).run()
"""

from gesichtool.config import AppConfig, DetectionMode, load_config
from gesichtool.detector import CascadeDetector, FaceDetector, HogDetector, create_detector
from gesichtool.geometry import Rectangle, Size
from gesichtool.runner import BatchRunner, BatchSummary

__all__ = [
    "AppConfig",
    "BatchRunner",
    "BatchSummary",
    "CascadeDetector",
    "DetectionMode",
    "FaceDetector",
    "HogDetector",
    "Rectangle",
    "Size",
    "create_detector",
    "load_config",
]
