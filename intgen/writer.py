"""Persisting generated files to a target project."""

from __future__ import annotations

from pathlib import Path
from typing import List, Protocol, Sequence

from .errors import InvalidRequestError
from .logging import get_logger
from .models import GeneratedFile


class ArtifactWriter(Protocol):
    def write(self, files: Sequence[GeneratedFile], output_path: str) -> List[str]:
        ...


class FileSystemWriter:
    """Writes generated files under an output directory.

    Existing files are left untouched unless ``overwrite`` is set.
    """

    def __init__(self, *, overwrite: bool = False) -> None:
        self.overwrite = overwrite
        self.logger = get_logger("writer")

    def write(self, files: Sequence[GeneratedFile], output_path: str) -> List[str]:
        root = Path(output_path).expanduser().resolve()
        written: List[str] = []
        for item in files:
            target = (root / item.path).resolve()
            if root != target and root not in target.parents:
                raise InvalidRequestError(f"Refusing to write outside {root}: {item.path}")
            if target.exists() and not self.overwrite:
                self.logger.info("Skipping existing file %s", item.path)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(item.content, encoding="utf-8")
            written.append(item.path)
        self.logger.info("Wrote %d file(s) to %s", len(written), root)
        return written
