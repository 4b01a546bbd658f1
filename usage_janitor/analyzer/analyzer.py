"""Per entity type analysis pipeline: discover, scan, report."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from usage_janitor.config import Config, get_config
from .entity import AnalyzedEntity, NeedleProcessor
from .errors import AnalysisFailure
from .report import AnalysisReport
from .scanner import Scanner, validate_root


@dataclass
class Candidate:
    """Raw entity description handed over by a discovery collaborator."""
    name: str
    defined_in: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, raw) -> 'Candidate':
        """Accept a Candidate, a plain name, a dict or any object with ``name``."""
        if isinstance(raw, Candidate):
            return raw
        if isinstance(raw, str):
            return cls(name=raw)
        if isinstance(raw, dict):
            data = dict(raw)
            name = data.pop('name')
            defined_in = data.pop('defined_in', None)
            return cls(name=name, defined_in=defined_in, metadata=data)
        return cls(name=raw.name, defined_in=getattr(raw, 'defined_in', None))


def candidate_label(raw) -> str:
    """Best-effort name for a candidate, even a malformed one."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        return str(raw.get('name', raw))
    return str(getattr(raw, 'name', raw))


Discovery = Callable[[Path], Iterable[Any]]


class AnalyzerPhase(IntEnum):
    IDLE = 0
    DISCOVER = 1
    SCAN = 2
    REPORT = 3
    DONE = 4


class Analyzer(ABC):
    """Orchestrate the analysis of one entity type.

    A run goes through DISCOVER, SCAN and REPORT strictly in order. A
    failure on one entity is recorded against it and the run moves on;
    only an invalid root stops everything, before discovery starts.
    """

    entity_type = 'entity'

    def __init__(self, root: str | Path, discover: Optional[Discovery] = None,
                 scanner: Optional[Scanner] = None, config: Optional[Config] = None,
                 needle_processor: Optional[NeedleProcessor] = None,
                 console: Optional[Console] = None, show_progress: bool = False,
                 threshold: Optional[int] = None):
        """Initialize analyzer.

        Args:
            root: Codebase root to analyze
            discover: Discovery collaborator, root -> candidates
                (default: the analyzer type's own discovery)
            scanner: Scanner to reuse (default: built from config)
            config: Settings source (default: get_config())
            needle_processor: Strategy applied to every needle of every entity
            console: Rich console for progress and warnings (silent if None)
            show_progress: Render a progress bar during the scan phase
            threshold: Usage threshold for the report (default: from config)

        Raises:
            InvalidRoot: If root is not a readable directory
        """
        self.root = validate_root(root)
        self.config = config or get_config()
        self._discover = discover
        self.scanner = scanner or Scanner(
            self.root,
            excluded_dirs=self.config.excluded_dirs,
            exclude_paths=self.config.exclude_paths,
            max_workers=self.config.max_workers,
            exclude_self=self.config.exclude_self,
            max_file_size=self.config.max_file_size,
            max_cache_chars=self.config.max_cache_chars,
        )
        self.needle_processor = needle_processor
        self.console = console
        self.show_progress = show_progress and console is not None
        self.threshold = self.config.usage_threshold if threshold is None else threshold

        self.phase = AnalyzerPhase.IDLE
        self.entities: List[AnalyzedEntity] = []
        self.discovery_errors: List[AnalysisFailure] = []

    # ------------------------------------------------------------------
    # Hooks for concrete entity types
    # ------------------------------------------------------------------

    def discover_candidates(self) -> Iterable[Any]:
        """Default discovery used when no collaborator was injected."""
        return []

    @abstractmethod
    def create_entity(self, candidate: Candidate) -> AnalyzedEntity:
        """Build the entity instance for one discovered candidate."""

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _enter(self, phase: AnalyzerPhase):
        if phase <= self.phase:
            raise RuntimeError(
                f"Cannot move from {self.phase.name} back to {phase.name}"
            )
        self.phase = phase

    def _warn(self, message: str):
        if self.console is not None:
            self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def discover(self) -> List[AnalyzedEntity]:
        """Phase 1: one entity per unique candidate name.

        A candidate that cannot be turned into an entity is recorded in
        ``discovery_errors`` and skipped.
        """
        self._enter(AnalyzerPhase.DISCOVER)

        raw_candidates = self._discover(self.root) if self._discover else self.discover_candidates()
        seen = set()
        entities = []
        for raw in raw_candidates:
            try:
                candidate = Candidate.coerce(raw)
                if candidate.name in seen:
                    continue
                entity = self.create_entity(candidate)
            except Exception as e:
                failure = AnalysisFailure(candidate_label(raw), e)
                failure.__cause__ = e
                self.discovery_errors.append(failure)
                self._warn(str(failure))
                continue
            seen.add(candidate.name)
            entities.append(entity)

        self.entities = entities
        return entities

    def scan_entity(self, entity: AnalyzedEntity) -> bool:
        """Scan one entity, recording any failure against it.

        Returns:
            True if the entity was scanned, False if a failure was recorded
        """
        try:
            result = self.scanner.scan(entity)
        except Exception as e:
            failure = entity.fail(e)
            self._warn(str(failure))
            return False

        entity.record_scan(result)
        return True

    def scan(self):
        """Phase 2: match every entity's needles against the tree."""
        self._enter(AnalyzerPhase.SCAN)

        if not self.show_progress:
            for entity in self.entities:
                self.scan_entity(entity)
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            task = progress.add_task(f"[cyan]Scanning {self.entity_type}s...", total=len(self.entities))
            for entity in self.entities:
                self.scan_entity(entity)
                progress.advance(task)

    def report(self) -> AnalysisReport:
        """Phase 3: collect entities into a report."""
        self._enter(AnalyzerPhase.REPORT)
        report = AnalysisReport(
            entity_type=self.entity_type,
            root=self.root,
            entities=list(self.entities),
            skipped_files=self.scanner.skipped_files,
            discovery_errors=list(self.discovery_errors),
            threshold=self.threshold,
        )
        self._enter(AnalyzerPhase.DONE)
        return report

    def analyze(self) -> AnalysisReport:
        """Run all three phases and return the report."""
        self.phase = AnalyzerPhase.IDLE
        self.entities = []
        self.discovery_errors = []
        self.discover()
        self.scan()
        return self.report()

    @property
    def failures(self) -> List[AnalysisFailure]:
        return [e.error for e in self.entities if e.error is not None]
