"""Helper utilities for constructing temporary projects in tests."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Mapping

from intgen.models import ScanReport
from intgen.scanner import ProjectScanner


class ProjectBuilder:
    """Utility for writing files into a throwaway project and rescanning it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()
        self._scanner = ProjectScanner()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def package_json(
        self,
        dependencies: Mapping[str, str] | None = None,
        dev_dependencies: Mapping[str, str] | None = None,
    ) -> None:
        data: dict[str, object] = {"name": "sample-app", "version": "0.1.0"}
        if dependencies:
            data["dependencies"] = dict(dependencies)
        if dev_dependencies:
            data["devDependencies"] = dict(dev_dependencies)
        (self.root / "package.json").write_text(json.dumps(data, indent=2), encoding="utf-8")

    def nextjs_app(self) -> None:
        """Seed a minimal Next.js app router project."""
        self.package_json({"next": "14.2.3", "react": "18.3.1", "react-dom": "18.3.1"})
        self.write(
            {
                "next.config.js": "module.exports = {};\n",
                "app/page.tsx": """
                    import Link from "next/link";

                    export default function Page() {
                      return <Link href="/about">About</Link>;
                    }
                """,
            }
        )

    def scan(self) -> ScanReport:
        """Return a fresh scan report of the project contents."""
        return self._scanner.scan(str(self.root))

    def path(self) -> Path:
        """Return the project root path."""
        return self.root


__all__ = ["ProjectBuilder"]
