"""
File Collection Module

Enumerates the files of a working tree that survive the exclusion rules and
reads them into documents.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import FrozenSet, Iterable, List, Optional, Union

from tqdm import tqdm

from ..config import SYSTEM_EXCLUDE_DIRS, SYSTEM_EXCLUDE_EXTENSIONS, SYSTEM_EXCLUDE_FILES
from ..exceptions import IndexBuildFailed
from ..types import Document


def parse_list(raw: Optional[str]) -> List[str]:
    """Split comma-separated user input, dropping blanks ("a, b," -> ["a", "b"])."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


@dataclass(frozen=True)
class ExclusionRules:
    """
    What to leave out of training.

    Directories match any path component exactly, extensions match
    case-insensitively, and files match by base name or by relative path.
    """

    exclude_dirs: FrozenSet[str] = field(default_factory=frozenset)
    exclude_extensions: FrozenSet[str] = field(default_factory=frozenset)
    exclude_files: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def create(
        cls,
        exclude_dirs: Iterable[str] = (),
        exclude_extensions: Iterable[str] = (),
        exclude_files: Iterable[str] = ()
    ) -> "ExclusionRules":
        return cls(
            exclude_dirs=frozenset(d.strip().strip("/\\") for d in exclude_dirs if d.strip()),
            exclude_extensions=frozenset(
                _normalize_extension(e) for e in exclude_extensions if e.strip()
            ),
            exclude_files=frozenset(
                PurePosixPath(f.strip().replace("\\", "/")).as_posix()
                for f in exclude_files if f.strip()
            ),
        )

    def with_system_defaults(self) -> "ExclusionRules":
        """Union with the exclusions every training run applies."""
        system = ExclusionRules.create(
            SYSTEM_EXCLUDE_DIRS, SYSTEM_EXCLUDE_EXTENSIONS, SYSTEM_EXCLUDE_FILES
        )
        return ExclusionRules(
            exclude_dirs=self.exclude_dirs | system.exclude_dirs,
            exclude_extensions=self.exclude_extensions | system.exclude_extensions,
            exclude_files=self.exclude_files | system.exclude_files,
        )

    def excludes_dir(self, name: str) -> bool:
        return name in self.exclude_dirs

    def excludes_file(self, relative_path: str) -> bool:
        path = PurePosixPath(relative_path)
        if any(part in self.exclude_dirs for part in path.parts[:-1]):
            return True
        if path.suffix.lower() in self.exclude_extensions:
            return True
        return path.name in self.exclude_files or path.as_posix() in self.exclude_files


def collect_files(root: Union[str, Path], rules: ExclusionRules) -> List[str]:
    """
    List the files under root that training should read.

    Excluded directories are pruned during the walk, so nothing inside them
    is ever visited. No file is opened here.

    Args:
        root: Working root
        rules: Exclusion rules (system defaults are not added here)

    Returns:
        Sorted relative POSIX paths
    """
    root = Path(root)
    files = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not rules.excludes_dir(d))
        rel_dir = Path(dirpath).relative_to(root)
        for name in filenames:
            rel = (rel_dir / name).as_posix()
            if not (Path(dirpath) / name).is_file():
                continue
            if rules.excludes_file(rel):
                continue
            files.append(rel)

    return sorted(files)


def _read_document(root: Path, relative_path: str) -> Document:
    try:
        with open(root / relative_path, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise IndexBuildFailed(f"Cannot read {relative_path}: {e}", path=relative_path) from e
    return Document(path=relative_path, content=content)


def read_documents(
    root: Union[str, Path],
    relative_paths: List[str],
    max_workers: int = 8,
    show_progress: bool = True
) -> List[Document]:
    """
    Read files as UTF-8 text, in parallel, keeping the input order.

    Raises:
        IndexBuildFailed: On the first file that cannot be read
    """
    root = Path(root)
    if not relative_paths:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(tqdm(
            pool.map(lambda p: _read_document(root, p), relative_paths),
            total=len(relative_paths),
            desc="Reading files",
            disable=not show_progress
        ))
