"""Dependency snapshot supplied by the workspace dependency analyzer."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, Field


class FileMetadata(BaseModel):
    """Import/export lists recorded for one file."""

    imports: list[str] = []
    exports: list[str] = []


class DependencySnapshot(BaseModel):
    """File → metadata and file → depended-upon files, for one workspace."""

    files: dict[str, FileMetadata] = Field(default_factory=dict)
    dependencies: dict[str, set[str]] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> DependencySnapshot:
        """Build a snapshot from a loosely-shaped mapping (e.g. parsed YAML/JSON).

        Missing sections are treated as empty; dependency values may be lists,
        sets or a single path string.
        """
        if not data:
            return cls()

        files: dict[str, FileMetadata] = {}
        for path, meta in (data.get("files") or {}).items():
            if isinstance(meta, FileMetadata):
                files[str(path)] = meta
            elif isinstance(meta, dict):
                files[str(path)] = FileMetadata(
                    imports=[str(i) for i in meta.get("imports") or []],
                    exports=[str(e) for e in meta.get("exports") or []],
                )

        dependencies: dict[str, set[str]] = {}
        for path, deps in (data.get("dependencies") or {}).items():
            if isinstance(deps, str):
                deps = [deps]
            dependencies[str(path)] = {str(d) for d in deps or []}

        return cls(files=files, dependencies=dependencies)

    def depends_on(self, source: str, target: str) -> bool:
        return target in self.dependencies.get(source, set())

    def imports_reference(self, source: str, target: str) -> bool:
        """True if ``source``'s recorded imports textually reference ``target``.

        An import matches when it contains the target's module name (file stem)
        or when the target path contains the import string.
        """
        meta = self.files.get(source)
        if meta is None or target not in self.files:
            return False
        stem = PurePosixPath(target).stem
        for import_path in meta.imports:
            if not import_path:
                continue
            if (stem and stem in import_path) or import_path in target:
                return True
        return False
