"""Small concrete entities and analyzers used across the test suite."""
import re
import threading
import time

from usage_janitor.analyzer.analyzer import Analyzer
from usage_janitor.analyzer.entity import AnalyzedEntity
from usage_janitor.analyzer.needle import Needle


class StubEntity(AnalyzedEntity):
    """Entity with a fixed matrix that counts how often it is computed."""

    entity_type = 'stub'

    def __init__(self, root, name, needles=(), delay=0.0, error=None, **kwargs):
        super().__init__(root, name, **kwargs)
        self.needles = list(needles)
        self.delay = delay
        self.error_to_raise = error
        self.compute_calls = 0
        self._calls_lock = threading.Lock()

    def compute_usage_matrix(self):
        with self._calls_lock:
            self.compute_calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error_to_raise is not None:
            raise self.error_to_raise
        return list(self.needles)


class StubAnalyzer(Analyzer):
    """Analyzer building stub entities from a name -> needles table."""

    entity_type = 'stub'

    def __init__(self, root, table, failing=(), **kwargs):
        self.table = table
        self.failing = set(failing)
        kwargs.setdefault('discover', lambda root: list(table))
        super().__init__(root, **kwargs)

    def create_entity(self, candidate):
        error = RuntimeError(f"cannot build {candidate.name}") if candidate.name in self.failing else None
        return StubEntity(
            self.root, candidate.name,
            needles=self.table.get(candidate.name, ()),
            error=error,
            defined_in=candidate.defined_in,
            needle_processor=self.needle_processor,
        )


def literal(name, text, weight=10, **kwargs):
    """Needle matching ``text`` literally."""
    return Needle(name, (re.escape(text),), weight=weight, **kwargs)
