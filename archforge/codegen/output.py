"""Generated file bundles."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from archforge.errors import DuplicateOutputPathError


@dataclass(frozen=True)
class GeneratedFile:
    path: str
    content: str
    type: str = "text"

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "content": self.content, "type": self.type}


@dataclass
class Output:
    files: List[GeneratedFile] = field(default_factory=list)
    # advisory findings raised while producing the files, e.g. rule violations
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen = set()
        for item in self.files:
            if item.path in seen:
                raise DuplicateOutputPathError(item.path)
            seen.add(item.path)

    def add(self, path: str, content: str, file_type: str = "text") -> GeneratedFile:
        if self.get(path) is not None:
            raise DuplicateOutputPathError(path)
        item = GeneratedFile(path=path, content=content, type=file_type)
        self.files.append(item)
        return item

    def get(self, path: str) -> Optional[GeneratedFile]:
        for item in self.files:
            if item.path == path:
                return item
        return None

    def paths(self) -> List[str]:
        return [item.path for item in self.files]

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {"files": [item.to_dict() for item in self.files]}

    def write_to(self, directory: str | Path) -> List[Path]:
        root = Path(directory)
        written = []
        for item in self.files:
            target = root / item.path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(item.content, encoding="utf-8")
            written.append(target)
        return written
