"""
Segment cache.

Holds the last known segment per segment type. Last write wins; there is no
expiry. When a cache directory is given, every put/clear is mirrored to
`<cache_dir>/<segment-type>-segment.json` and existing files are loaded on
construction, so segments survive between runs.

File errors never fail a pipeline step: they are logged and the in-memory
copy stays authoritative.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from src.common.logger import get_logger
from src.landing_page.types import Segment, SegmentType


def segment_filename(segment_type: SegmentType) -> str:
    """identity -> identity-segment.json, service_offering -> service-offering-segment.json"""
    return f"{SegmentType.parse(segment_type).value.replace('_', '-')}-segment.json"


class SegmentCache:
    """
    Thread-safe segment store keyed by segment type.

    Args:
        cache_dir: Directory for JSON persistence; None keeps the cache in memory
    """

    def __init__(self, cache_dir: Optional[Union[str, Path]] = None):
        self._logger = get_logger(__name__, stage="cache")
        self._lock = threading.Lock()
        self._segments: Dict[SegmentType, Segment] = {}
        self._cache_dir = Path(cache_dir) if cache_dir else None

        if self._cache_dir is not None:
            self._load()

    @property
    def cache_dir(self) -> Optional[Path]:
        return self._cache_dir

    def get(self, segment_type: SegmentType) -> Optional[Segment]:
        with self._lock:
            return self._segments.get(SegmentType.parse(segment_type))

    def has(self, segment_type: SegmentType) -> bool:
        with self._lock:
            return SegmentType.parse(segment_type) in self._segments

    def get_all(self) -> Dict[SegmentType, Segment]:
        """Snapshot of every cached segment."""
        with self._lock:
            return dict(self._segments)

    def put(self, segment_type: SegmentType, segment: Segment) -> None:
        segment_type = SegmentType.parse(segment_type)
        if segment.segment_type != segment_type:
            raise ValueError(
                f"Cannot cache {segment.segment_type.value} segment under {segment_type.value}"
            )
        with self._lock:
            self._segments[segment_type] = segment
            self._write(segment_type, segment)
        self._logger.debug(f"Cached {segment_type.value} segment v{segment.version}")

    def clear(self, segment_type: SegmentType) -> None:
        segment_type = SegmentType.parse(segment_type)
        with self._lock:
            self._segments.pop(segment_type, None)
            self._remove(segment_type)
        self._logger.debug(f"Cleared {segment_type.value} segment")

    def clear_all(self) -> None:
        with self._lock:
            for segment_type in list(self._segments):
                self._remove(segment_type)
            self._segments.clear()
        self._logger.info("Cleared all cached segments")

    # ===== Persistence =====

    def _path(self, segment_type: SegmentType) -> Path:
        return self._cache_dir / segment_filename(segment_type)

    def _load(self) -> None:
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._logger.error(f"Failed to create cache directory {self._cache_dir}: {e}")
            return

        loaded = []
        for segment_type in SegmentType:
            path = self._path(segment_type)
            if not path.exists():
                continue
            try:
                with open(path, "r", encoding="utf-8") as f:
                    segment = Segment.from_dict(json.load(f))
            except (OSError, ValueError, KeyError, TypeError) as e:
                self._logger.error(f"Ignoring unreadable cache file {path}: {e}")
                continue
            if segment.segment_type != segment_type:
                self._logger.error(
                    f"Ignoring cache file {path}: holds a {segment.segment_type.value} segment"
                )
                continue
            self._segments[segment_type] = segment
            loaded.append(segment_type.value)

        if loaded:
            self._logger.info(f"Loaded cached segments: {', '.join(loaded)}")

    def _write(self, segment_type: SegmentType, segment: Segment) -> None:
        if self._cache_dir is None:
            return
        path = self._path(segment_type)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self._cache_dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(segment.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            self._logger.error(f"Failed to save {segment_type.value} segment to {path}: {e}")

    def _remove(self, segment_type: SegmentType) -> None:
        if self._cache_dir is None:
            return
        path = self._path(segment_type)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            self._logger.error(f"Failed to remove cache file {path}: {e}")
