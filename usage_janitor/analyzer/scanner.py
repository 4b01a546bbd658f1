"""File tree scanner matching usage patterns against file contents.

Walks the root once per entity in a stable order, keeping file text in a
bounded in-memory cache. Files that cannot be read as text are skipped and
tallied instead of failing the scan.
"""
import os
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .entity import AnalyzedEntity
from .errors import InvalidRoot, ScanFileUnreadable
from .needle import TARGET_PATH, Needle


# Directories never worth searching (VCS metadata, environments, build output)
DEFAULT_EXCLUDED_DIRS = frozenset({
    '.git', '.hg', '.svn',
    'venv', '.venv', 'env', '.virtualenv', '.tox', 'site-packages',
    'vendor', 'node_modules', 'bower_components',
    'dist', 'build', '__pycache__', '.mypy_cache', '.pytest_cache',
    '.janitor_cache', '.janitor_trash',
})

DEFAULT_MAX_FILE_SIZE = 2 * 1024 * 1024
DEFAULT_MAX_WORKERS = 8
DEFAULT_MAX_CACHE_CHARS = 64 * 1024 * 1024

# Bytes inspected when sniffing for binary content
_SNIFF_SIZE = 8192


def validate_root(root: str | Path) -> Path:
    """Resolve ``root`` and make sure it is a readable directory.

    Raises:
        InvalidRoot: If the path is missing, not a directory or unreadable
    """
    if root is None or str(root) == '':
        raise InvalidRoot(root, "no root path given")
    path = Path(root).expanduser().resolve()
    if not path.exists():
        raise InvalidRoot(path, "path does not exist")
    if not path.is_dir():
        raise InvalidRoot(path, "path is not a directory")
    if not os.access(path, os.R_OK | os.X_OK):
        raise InvalidRoot(path, "directory is not readable")
    return path


@dataclass(frozen=True)
class FileMatch:
    """Needles that matched one file, in usage matrix order."""
    path: str
    needles: Tuple[Needle, ...]

    @property
    def credited(self) -> Needle:
        """Needle credited for this occurrence (first match in matrix order)."""
        return self.needles[0]

    @property
    def weight(self) -> int:
        return sum(needle.weight for needle in self.needles)

    def to_dict(self) -> dict:
        return {
            'path': self.path,
            'credited': self.credited.name,
            'needles': [needle.name for needle in self.needles],
            'weight': self.weight,
        }


@dataclass
class ScanResult:
    """Outcome of scanning the tree for one entity."""
    entity_name: str
    matches: List[FileMatch] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    files_scanned: int = 0

    @property
    def occurrences(self) -> List[str]:
        return [match.path for match in self.matches]

    @property
    def usage_delta(self) -> int:
        return sum(match.weight for match in self.matches)


class Scanner:
    """Search a directory tree for an entity's usage patterns."""

    def __init__(self, root: str | Path, excluded_dirs: Optional[Iterable[str]] = None,
                 exclude_paths: Iterable[str] = (), max_workers: Optional[int] = None,
                 exclude_self: bool = True, max_file_size: int = DEFAULT_MAX_FILE_SIZE,
                 max_cache_chars: int = DEFAULT_MAX_CACHE_CHARS):
        """Initialize scanner.

        Args:
            root: Directory to search
            excluded_dirs: Directory names pruned anywhere in the tree
                (default: DEFAULT_EXCLUDED_DIRS)
            exclude_paths: Glob patterns matched against relative POSIX paths
            max_workers: Thread pool size for per-file matching
            exclude_self: Skip the entity's own defining file
            max_file_size: Files above this many bytes are skipped
            max_cache_chars: Characters of file text kept in memory; files
                read once the budget is spent are read again on every scan
        """
        self.root = validate_root(root)
        self.excluded_dirs = frozenset(
            DEFAULT_EXCLUDED_DIRS if excluded_dirs is None else excluded_dirs
        )
        self.exclude_paths = tuple(exclude_paths)
        self.max_workers = max_workers or DEFAULT_MAX_WORKERS
        self.exclude_self = exclude_self
        self.max_file_size = max_file_size
        self.max_cache_chars = max_cache_chars

        self._contents: Dict[str, str] = {}
        self._cached_chars = 0
        self._skipped: Dict[str, str] = {}
        self._files: Optional[List[Tuple[Path, str]]] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Corpus
    # ------------------------------------------------------------------

    def is_excluded(self, relative_path: str) -> bool:
        return any(fnmatch(relative_path, pattern) for pattern in self.exclude_paths)

    def iter_files(self) -> Iterator[Tuple[Path, str]]:
        """Yield (absolute path, relative POSIX path) in traversal order."""
        for dirpath, dirnames, filenames in os.walk(self.root):
            # Prune in place so os.walk never descends into excluded dirs
            dirnames[:] = sorted(d for d in dirnames if d not in self.excluded_dirs)
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                relative = path.relative_to(self.root).as_posix()
                if self.is_excluded(relative):
                    continue
                yield path, relative

    def files(self) -> List[Tuple[Path, str]]:
        """Traversal listing, computed once per scanner."""
        with self._lock:
            if self._files is None:
                self._files = list(self.iter_files())
            return self._files

    def read(self, path: Path, relative: str) -> str:
        """Return file contents as text, cached while the cache budget allows.

        Raises:
            ScanFileUnreadable: For OS errors, oversized, binary or
                non UTF-8 files
        """
        with self._lock:
            if relative in self._contents:
                return self._contents[relative]
            if relative in self._skipped:
                raise ScanFileUnreadable(relative, self._skipped[relative])

        try:
            text = self._load(path)
        except ScanFileUnreadable as e:
            with self._lock:
                self._skipped.setdefault(relative, e.reason)
            raise ScanFileUnreadable(relative, e.reason) from e

        with self._lock:
            if relative not in self._contents and self._cached_chars + len(text) <= self.max_cache_chars:
                self._contents[relative] = text
                self._cached_chars += len(text)
        return text

    def _load(self, path: Path) -> str:
        try:
            size = path.stat().st_size
        except (IOError, OSError) as e:
            raise ScanFileUnreadable(path, e.strerror or str(e)) from e
        if size > self.max_file_size:
            raise ScanFileUnreadable(path, f"larger than {self.max_file_size} bytes")

        try:
            with open(path, 'rb') as f:
                data = f.read()
        except (IOError, OSError) as e:
            raise ScanFileUnreadable(path, e.strerror or str(e)) from e

        if b'\x00' in data[:_SNIFF_SIZE]:
            raise ScanFileUnreadable(path, "binary file")
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ScanFileUnreadable(path, "not valid UTF-8") from e

    @property
    def skipped_files(self) -> Dict[str, str]:
        """Relative path -> reason for every file skipped so far."""
        with self._lock:
            return dict(self._skipped)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def scan(self, entity: AnalyzedEntity) -> ScanResult:
        """Find the files where the entity's needles match.

        Raises:
            re.error: If the combined usage pattern is not a valid regex
            InvalidNeedle: If the entity's matrix cannot be built
        """
        matrix = entity.get_usage_matrix()
        combined = re.compile(entity.get_usage_pattern())
        content_needles = [n for n in matrix if n.target != TARGET_PATH]
        path_needles = [n for n in matrix if n.target == TARGET_PATH]

        candidates = [
            (path, relative) for path, relative in self.files()
            if not (self.exclude_self and entity.defined_in and relative == entity.defined_in)
        ]

        def match_file(item):
            path, relative = item
            matched = {n for n in path_needles if n.matches(relative)}
            skipped = False
            if content_needles:
                try:
                    text = self.read(path, relative)
                except ScanFileUnreadable:
                    skipped = True
                else:
                    # Cheap pre-filter before testing needles one by one
                    if combined.search(text):
                        matched.update(n for n in content_needles if n.matches(text))
            needles = tuple(n for n in matrix if n in matched)
            return relative, needles, skipped

        result = ScanResult(entity_name=entity.name, files_scanned=len(candidates))
        if not candidates:
            return result

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # map() keeps traversal order regardless of completion order
            for relative, needles, skipped in executor.map(match_file, candidates):
                if skipped:
                    result.skipped.append(relative)
                if needles:
                    result.matches.append(FileMatch(relative, needles))

        return result
