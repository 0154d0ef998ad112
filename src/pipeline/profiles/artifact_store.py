"""Transient on-disk handoff of content artifacts between stages.

Stage 1 writes one artifact per council area; stage 2 reads it back and
removes it straight away. Artifacts are keyed by area name, which is
unique, so no two workers ever touch the same file. Files are written
with pandas' pickle support because content mappings hold DataFrames and
figures alongside plain values.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import pandas as pd

from src.config import ARTIFACT_FILENAME_SUFFIX
from src.exceptions import MissingArtifactError

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Content artifacts stored as ``<root>/<key><suffix>``.

    Parameters
    ----------
    root : Path
        Directory holding the artifacts; created when absent.
    suffix : str
        Filename suffix appended to every key.

    Examples
    --------
    >>> import tempfile
    >>> store = ArtifactStore(Path(tempfile.mkdtemp()))
    >>> store.put("Fife", {"area": "Fife"})
    >>> store.get_and_delete("Fife"), store.exists("Fife")
    ({'area': 'Fife'}, False)
    """

    def __init__(self, root: Path, suffix: str = ARTIFACT_FILENAME_SUFFIX) -> None:
        self.root = Path(root)
        self.suffix = suffix
        self.root.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"ArtifactStore({str(self.root)!r})"

    def path_for(self, key: str) -> Path:
        """Deterministic file path for ``key``."""
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise ValueError(f"Invalid artifact key: {key!r}")
        return self.root / f"{key}{self.suffix}"

    def put(self, key: str, content: Any) -> Path:
        """Persist ``content`` under ``key``, replacing any earlier artifact.

        The content is written to a temporary file next to the target and
        moved into place, so a reader never sees a half-written artifact.
        """
        target = self.path_for(key)
        partial = target.with_name(f".{target.name}.{os.getpid()}.partial")
        try:
            pd.to_pickle(content, partial)
            os.replace(partial, target)
        finally:
            partial.unlink(missing_ok=True)
        return target

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def get_and_delete(self, key: str) -> Any:
        """Return the artifact stored under ``key`` and remove its file.

        The file is removed as soon as it has been read, also when reading
        fails, so whatever the caller does with the content next cannot
        leave the artifact behind.

        Raises
        ------
        MissingArtifactError
            If no artifact exists for ``key``.
        """
        path = self.path_for(key)
        if not path.is_file():
            raise MissingArtifactError(
                f"No content artifact for {key!r} in {self.root}",
                context={"key": key, "path": str(path)},
            )
        try:
            return pd.read_pickle(path)
        finally:
            path.unlink(missing_ok=True)
            logger.debug("Removed artifact %s", path)

    def leftover_keys(self) -> list[str]:
        """Keys of artifacts still present, sorted."""
        return sorted(
            p.name[: -len(self.suffix)]
            for p in self.root.glob(f"*{self.suffix}")
            if p.is_file() and not p.name.startswith(".")
        )
