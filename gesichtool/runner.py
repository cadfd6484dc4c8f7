"""
Batch runner — the single public API for extracting faces from a batch.

Responsibility:
    Create the output directory, fan out one worker task per input
    image, bound the number of running workers with a PermitPool, join
    every task and re-raise the first failure.

Worker task (one per image, in its own thread):
    permit → new detector → load → detect → crop & write

Threading:
    - The configuration is frozen and shared by all workers.
    - Each worker constructs its own detector; detectors are never shared.
    - Output names come from indices fixed at fan-out, so no locking is
      needed around the output directory.

Failure behavior:
    - An unreadable image is logged and counted; the batch continues.
    - Any other exception is re-raised once all workers have finished.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from gesichtool import image_io
from gesichtool.config import AppConfig, DetectionConfig
from gesichtool.cropper import extract_faces
from gesichtool.detector import FaceDetector, create_detector
from gesichtool.permit import PermitPool

logger = logging.getLogger(__name__)

DetectorFactory = Callable[[DetectionConfig], FaceDetector]

# Upper bound on worker threads; PermitPool bounds the active ones.
_MAX_THREADS = 64


@dataclass(frozen=True)
class ImageResult:
    """Outcome of one worker task."""

    image_index: int
    path: str
    read_ok: bool
    faces_detected: int = 0
    faces_written: int = 0


@dataclass(frozen=True)
class BatchSummary:
    """Per-image results of a batch, in input order."""

    results: Tuple[ImageResult, ...]

    @property
    def images_total(self) -> int:
        return len(self.results)

    @property
    def images_failed(self) -> int:
        return sum(1 for r in self.results if not r.read_ok)

    @property
    def faces_written(self) -> int:
        return sum(r.faces_written for r in self.results)


class BatchRunner:
    """Runs detection and extraction over every input image of a config.

    Usage:
        summary = BatchRunner(config).run()

    Args:
        config: Validated application configuration.
        detector_factory: Builds a new detector per worker. Defaults to
                          create_detector.
        permits: Shared permit pool. Defaults to one sized to
                 config.run.parallelism.
    """

    def __init__(
        self,
        config: AppConfig,
        detector_factory: Optional[DetectorFactory] = None,
        permits: Optional[PermitPool] = None,
    ) -> None:
        self._config = config
        self._detector_factory = detector_factory or create_detector
        self._permits = permits or PermitPool(config.run.parallelism)

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def permits(self) -> PermitPool:
        return self._permits

    def run(self) -> BatchSummary:
        """Process every input image.

        Returns:
            A BatchSummary with one ImageResult per input, in input order.

        Raises:
            Exception: The first worker exception, in input order, after
                       all workers have finished.
        """
        paths = self._config.input.paths
        output_dir = Path(self._config.output.directory)
        output_dir.mkdir(parents=True, exist_ok=True)

        logger.debug(
            "Starting batch: %d image(s), mode=%s, parallelism=%d, output=%s",
            len(paths), self._config.detection.mode.value, self._permits.size, output_dir,
        )

        workers = max(1, min(len(paths), _MAX_THREADS))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gesichtool") as pool:
            futures = [
                pool.submit(self._process_image, image_index, path)
                for image_index, path in enumerate(paths)
            ]
        # Leaving the executor joins every task

        results = []
        first_error: Optional[BaseException] = None
        for image_index, future in enumerate(futures):
            error = future.exception()
            if error is not None:
                logger.debug("Worker for image %03d failed: %r", image_index, error)
                if first_error is None:
                    first_error = error
                continue
            results.append(future.result())

        if first_error is not None:
            raise first_error

        return BatchSummary(results=tuple(results))

    def _process_image(self, image_index: int, path: str) -> ImageResult:
        """Worker task body for one input image."""
        with self._permits.permit():
            detector = self._detector_factory(self._config.detection)

            if self._config.run.verbose:
                logger.info("processing %s", path)

            image = image_io.load(path)
            if image.size == 0:
                logger.error("failed to read image: %s", path)
                return ImageResult(image_index=image_index, path=path, read_ok=False)

            faces = detector.detect(image)
            logger.info("detected %d face(s) in %s", len(faces), path)

            written = extract_faces(
                image,
                faces,
                image_index=image_index,
                output_dir=self._config.output.directory,
                output_size=self._config.output.size,
                jpeg_quality=self._config.output.jpeg_quality,
            )

        return ImageResult(
            image_index=image_index,
            path=path,
            read_ok=True,
            faces_detected=len(faces),
            faces_written=written,
        )
