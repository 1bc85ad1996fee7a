import os
import logging
from pathlib import Path
from typing import Dict, Iterator, Optional, Set

from .. import config
from ..models import MediaItem, ReaderKind


class MediaScanner:
    """
    Finds DV captures in a folder and pairs each with the metadata
    sidecars the analyzer left next to it.
    """

    def scan(self,
             root: Path,
             recursive: bool = False,
             skip_dirs: Optional[Set[Path]] = None) -> Iterator[MediaItem]:
        """Yields a MediaItem for every media file under `root`, in stable name order."""
        if not root.is_dir():
            raise NotADirectoryError(f"{root} is not a folder")

        for path in self._iter_media(root, recursive, skip_dirs or set()):
            item = MediaItem(path, self.find_sources(path))
            if not item.sources:
                logging.debug(f"No metadata sidecars found for {path}")
            yield item

    def _iter_media(self, root: Path, recursive: bool, skip_dirs: Set[Path]) -> Iterator[Path]:
        """Depth-first walker using os.scandir; only the top level unless `recursive`."""
        stack = [root]
        while stack:
            current = stack.pop()
            if skip_dirs and any(sd == current or sd in current.parents for sd in skip_dirs):
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError:
                logging.warning(f"Permission denied: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file() and Path(e.name).suffix.lower() in config.MEDIA_EXTS:
                    yield Path(e.path)

            if recursive:
                # Reversed so A is processed before Z
                for d in reversed(dirs):
                    stack.append(d)

    def find_sources(self, media_path: Path) -> Dict[ReaderKind, Path]:
        """First existing sidecar per reader kind."""
        sources: Dict[ReaderKind, Path] = {}
        parent = media_path.parent
        for kind, patterns in config.SIDECAR_PATTERNS.items():
            for pattern in patterns:
                candidate = parent / pattern.format(stem=media_path.stem)
                if candidate.is_file():
                    sources[kind] = candidate
                    break
        return sources
