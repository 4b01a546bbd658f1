"""Abstract base for every entity whose usage is analyzed."""
import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Tuple

from .errors import AnalysisFailure, InvalidNeedle
from .needle import Needle, unique

if TYPE_CHECKING:
    from .scanner import ScanResult


NeedleProcessor = Callable[['AnalyzedEntity', Needle], Needle]


class AnalyzedEntity(ABC):
    """A unit under analysis (route, view, asset...).

    Subclasses declare what counts as usage by implementing
    ``compute_usage_matrix``. The matrix is computed at most once per
    instance and shared by every later reader.

    Attributes:
        root: Absolute path bounding the usage lookup
        name: Identifying string, shown in reports
        usage: Running usage score (sum of matched needle weights)
        occurrences: Root-relative files where a needle matched
        defined_in: Root-relative file defining the entity, if known
        error: AnalysisFailure attached when the analysis did not complete
    """

    # Short label used in reports, e.g. 'route'
    entity_type = 'entity'

    def __init__(self, root: str | Path, name: str, defined_in: Optional[str] = None,
                 needle_processor: Optional[NeedleProcessor] = None):
        self.root = Path(root).resolve()
        self.name = name
        self.defined_in = defined_in
        self.usage = 0
        self.occurrences: List[str] = []
        self.error: Optional[AnalysisFailure] = None

        self._needle_processor = needle_processor
        self._usage_matrix: Optional[Tuple[Needle, ...]] = None
        self._matrix_computed = False
        self._matrix_lock = threading.Lock()
        self._state_lock = threading.Lock()

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r}, usage={self.usage})"

    # ------------------------------------------------------------------
    # Usage matrix
    # ------------------------------------------------------------------

    @abstractmethod
    def compute_usage_matrix(self) -> Sequence[Needle]:
        """Return the needles whose matches count as usage of this entity."""

    def process_usage_needles(self, needle: Needle) -> Needle:
        """Rewrite a needle before it is stored in the usage matrix.

        Applies the injected processor when one was given, identity otherwise.
        """
        if self._needle_processor is not None:
            return self._needle_processor(self, needle)
        return needle

    def get_usage_matrix(self) -> Tuple[Needle, ...]:
        """Return the memoized, post-processed usage matrix.

        Raises:
            InvalidNeedle: If the matrix holds something other than needles
            Exception: Whatever compute_usage_matrix raised; nothing is
                cached in that case and the next call retries
        """
        if self._matrix_computed:
            return self._usage_matrix

        with self._matrix_lock:
            # Another thread may have finished while we waited
            if self._matrix_computed:
                return self._usage_matrix

            matrix = []
            for needle in self.compute_usage_matrix():
                if not isinstance(needle, Needle):
                    raise InvalidNeedle(
                        f"Usage matrix of '{self.name}' contains {needle!r}, expected a Needle"
                    )
                processed = self.process_usage_needles(needle)
                if not isinstance(processed, Needle):
                    raise InvalidNeedle(
                        f"Needle processor for '{self.name}' returned {processed!r}"
                    )
                matrix.append(processed)

            self._usage_matrix = tuple(matrix)
            self._matrix_computed = True
            return self._usage_matrix

    @property
    def usage_matrix(self) -> Tuple[Needle, ...]:
        return self.get_usage_matrix()

    def get_usage_pattern(self) -> str:
        """Alternation of every distinct pattern across the usage matrix."""
        fragments = []
        for needle in self.get_usage_matrix():
            fragments.extend(needle.patterns)
        return '|'.join(unique(fragments))

    # ------------------------------------------------------------------
    # Scan results
    # ------------------------------------------------------------------

    def record_scan(self, result: 'ScanResult') -> None:
        """Fold a scan result into usage and occurrences in one step."""
        delta = 0
        new_files = []
        for match in result.matches:
            delta += sum(needle.weight for needle in match.needles)
            new_files.append(match.path)

        with self._state_lock:
            seen = set(self.occurrences)
            for path in new_files:
                if path not in seen:
                    seen.add(path)
                    self.occurrences.append(path)
            self.usage += delta

    def fail(self, cause: BaseException) -> AnalysisFailure:
        """Attach a failure without touching usage or occurrences."""
        if isinstance(cause, AnalysisFailure):
            failure = cause
        else:
            failure = AnalysisFailure(self.name, cause)
            failure.__cause__ = cause
        with self._state_lock:
            self.error = failure
        return failure

    def snapshot(self) -> Tuple[int, List[str]]:
        """Consistent copy of (usage, occurrences)."""
        with self._state_lock:
            return self.usage, list(self.occurrences)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_report(self) -> dict:
        """Plain structure describing the entity for reports."""
        usage, occurrences = self.snapshot()

        matrix = []
        pattern = ''
        if self.error is None:
            matrix = [needle.to_dict() for needle in self.get_usage_matrix()]
            pattern = self.get_usage_pattern()
        elif self._matrix_computed:
            matrix = [needle.to_dict() for needle in self._usage_matrix]
            pattern = self.get_usage_pattern()

        return {
            'type': self.entity_type,
            'root': str(self.root),
            'name': self.name,
            'defined_in': self.defined_in,
            'usage': usage,
            'usage_matrix': matrix,
            'usage_pattern': pattern,
            'occurrences': occurrences,
            'error': self.error.to_dict() if self.error is not None else None,
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_report(), indent=indent, ensure_ascii=False)
