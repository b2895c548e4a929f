"""Tests for intgen.writer."""

from __future__ import annotations

from pathlib import Path

import pytest

from intgen.errors import InvalidRequestError
from intgen.models import GeneratedFile
from intgen.writer import FileSystemWriter


def _generated(path: str, content: str = "export {};\n") -> GeneratedFile:
    return GeneratedFile(
        path=path,
        content=content,
        file_type="typescript",
        language="typescript",
        is_required=True,
        category="config",
        exists=False,
        size=len(content),
        checksum="",
        template_id="stripe-config",
    )


def test_writer_creates_nested_files(tmp_path: Path) -> None:
    written = FileSystemWriter().write([_generated("lib/stripe.ts")], str(tmp_path))

    assert written == ["lib/stripe.ts"]
    assert (tmp_path / "lib" / "stripe.ts").read_text(encoding="utf-8") == "export {};\n"


def test_writer_skips_existing_files_unless_overwriting(tmp_path: Path) -> None:
    target = tmp_path / "lib" / "stripe.ts"
    target.parent.mkdir(parents=True)
    target.write_text("// hand written\n", encoding="utf-8")

    assert FileSystemWriter().write([_generated("lib/stripe.ts")], str(tmp_path)) == []
    assert target.read_text(encoding="utf-8") == "// hand written\n"

    assert FileSystemWriter(overwrite=True).write([_generated("lib/stripe.ts")], str(tmp_path)) == [
        "lib/stripe.ts"
    ]
    assert target.read_text(encoding="utf-8") == "export {};\n"


def test_writer_refuses_paths_outside_output(tmp_path: Path) -> None:
    output = tmp_path / "out"
    output.mkdir()

    with pytest.raises(InvalidRequestError):
        FileSystemWriter().write([_generated("../escape.ts")], str(output))
    assert not (tmp_path / "escape.ts").exists()
