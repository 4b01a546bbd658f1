"""Tests for the abstract analyzed entity: memoization, patterns, reports."""
import json
import threading

import pytest

from usage_janitor.analyzer.errors import AnalysisFailure, InvalidNeedle
from usage_janitor.analyzer.needle import Needle
from usage_janitor.analyzer.scanner import FileMatch, ScanResult

from helpers import StubEntity


@pytest.fixture
def needles():
    return [
        Needle('render', (r"render\('home'\)", "home"), weight=10),
        Needle('include', ("home", r"@include\('home'\)"), weight=5),
    ]


class TestUsageMatrixMemoization:
    """The matrix is computed once and the same object is handed back."""

    def test_computed_once_across_calls(self, tmp_path, needles):
        """The matrix is computed on first access only."""
        entity = StubEntity(tmp_path, 'home', needles)

        first = entity.get_usage_matrix()
        for _ in range(5):
            assert entity.get_usage_matrix() is first
        assert entity.usage_matrix is first

        assert entity.compute_calls == 1, "compute_usage_matrix must run exactly once"

    def test_pattern_and_report_reuse_cached_matrix(self, tmp_path, needles):
        """Pattern and report reuse the cached matrix."""
        entity = StubEntity(tmp_path, 'home', needles)

        entity.get_usage_pattern()
        entity.get_usage_pattern()
        entity.to_report()

        assert entity.compute_calls == 1

    def test_concurrent_first_access_computes_once(self, tmp_path, needles):
        """Threads racing on first access share one computation."""
        entity = StubEntity(tmp_path, 'home', needles, delay=0.05)
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(entity.get_usage_matrix())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert entity.compute_calls == 1
        assert len(results) == 8
        assert all(result is results[0] for result in results)
        assert len(results[0]) == 2, "no thread may see a partially built matrix"

    def test_failed_compute_is_not_cached(self, tmp_path, needles):
        """A failed computation is retried on the next access."""
        entity = StubEntity(tmp_path, 'home', needles, error=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            entity.get_usage_matrix()
        assert entity.usage == 0
        assert entity.occurrences == []

        # A later call retries and succeeds
        entity.error_to_raise = None
        matrix = entity.get_usage_matrix()
        assert len(matrix) == 2
        assert entity.compute_calls == 2
        entity.get_usage_matrix()
        assert entity.compute_calls == 2

    def test_non_needle_in_matrix_rejected(self, tmp_path):
        """A matrix entry that is not a Needle is refused."""
        entity = StubEntity(tmp_path, 'home', ["home"])
        with pytest.raises(InvalidNeedle):
            entity.get_usage_matrix()


class TestNeedleProcessing:

    def test_default_hook_is_identity(self, tmp_path, needles):
        """Without a processor the needles come back unchanged."""
        entity = StubEntity(tmp_path, 'home', needles)
        assert list(entity.get_usage_matrix()) == needles

    def test_injected_processor_rewrites_every_needle(self, tmp_path, needles):
        """An injected processor is applied to each needle."""
        def add_view_call(entity, needle):
            return needle.with_patterns(rf"view\('{entity.name}'\)")

        entity = StubEntity(tmp_path, 'home', needles, needle_processor=add_view_call)
        matrix = entity.get_usage_matrix()

        assert all(r"view\('home'\)" in needle.patterns for needle in matrix)
        assert [needle.weight for needle in matrix] == [10, 5]

    def test_subclass_override(self, tmp_path, needles):
        """Subclasses can override the processing hook."""
        class Doubled(StubEntity):
            def process_usage_needles(self, needle):
                return Needle(needle.name, needle.patterns, weight=needle.weight * 2)

        entity = Doubled(tmp_path, 'home', needles)
        assert [needle.weight for needle in entity.get_usage_matrix()] == [20, 10]

    def test_processor_must_return_needle(self, tmp_path, needles):
        """A processor returning something else is refused."""
        entity = StubEntity(tmp_path, 'home', needles, needle_processor=lambda entity, needle: None)
        with pytest.raises(InvalidNeedle):
            entity.get_usage_matrix()


class TestUsagePattern:

    def test_union_is_deduplicated_in_matrix_order(self, tmp_path, needles):
        """Repeated fragments appear once in the union."""
        entity = StubEntity(tmp_path, 'home', needles)
        assert entity.get_usage_pattern() == r"render\('home'\)|home|@include\('home'\)"

    def test_union_matches_every_fragment(self, tmp_path, needles):
        """The union matches whatever any fragment matches."""
        entity = StubEntity(tmp_path, 'home', needles)
        fragments = entity.get_usage_pattern().split('|')

        expected = {pattern for needle in needles for pattern in needle.patterns}
        assert set(fragments) == expected
        assert len(fragments) == len(expected)

    def test_pattern_is_recomputed_from_cached_matrix(self, tmp_path, needles):
        """The union is stable across calls."""
        entity = StubEntity(tmp_path, 'home', needles)
        assert entity.get_usage_pattern() == entity.get_usage_pattern()
        assert entity.compute_calls == 1


class TestRecordingResults:

    def test_record_scan_adds_weights_and_files(self, tmp_path, needles):
        """A scan result adds its weights and files."""
        entity = StubEntity(tmp_path, 'home', needles)
        render, include = needles
        result = ScanResult('home', matches=[
            FileMatch('a.src', (render, include)),
            FileMatch('b.src', (include,)),
        ])

        entity.record_scan(result)

        assert entity.usage == 20
        assert entity.occurrences == ['a.src', 'b.src']

    def test_occurrences_never_duplicate(self, tmp_path, needles):
        """The same file is listed once however often it is recorded."""
        entity = StubEntity(tmp_path, 'home', needles)
        result = ScanResult('home', matches=[FileMatch('a.src', (needles[0],))])

        entity.record_scan(result)
        entity.record_scan(result)

        assert entity.occurrences == ['a.src']
        assert entity.usage == 20

    def test_fail_keeps_prior_values(self, tmp_path, needles):
        """A failure keeps the usage recorded before it."""
        entity = StubEntity(tmp_path, 'home', needles)
        entity.record_scan(ScanResult('home', matches=[FileMatch('a.src', (needles[1],))]))

        cause = ValueError("bad pattern")
        failure = entity.fail(cause)

        assert isinstance(failure, AnalysisFailure)
        assert failure.cause is cause
        assert failure.__cause__ is cause
        assert entity.error is failure
        assert entity.usage == 5
        assert entity.occurrences == ['a.src']


class TestSerialization:

    def test_report_fields(self, tmp_path, needles):
        """to_report() exposes name, score, files and pattern."""
        entity = StubEntity(tmp_path, 'home', needles, defined_in='views/home.view')
        report = entity.to_report()

        assert report['root'] == str(tmp_path.resolve())
        assert report['name'] == 'home'
        assert report['usage'] == 0
        assert report['occurrences'] == []
        assert report['usage_pattern'] == entity.get_usage_pattern()
        assert [n['name'] for n in report['usage_matrix']] == ['render', 'include']
        assert report['defined_in'] == 'views/home.view'
        assert report['error'] is None

    def test_failed_entity_reports_error_without_matrix(self, tmp_path):
        """A failed entity still reports, with its error."""
        entity = StubEntity(tmp_path, 'broken', error=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            entity.get_usage_matrix()
        entity.fail(RuntimeError("boom"))

        report = entity.to_report()

        assert report['usage_matrix'] == []
        assert report['usage_pattern'] == ''
        assert report['error']['type'] == 'RuntimeError'
        assert report['error']['message'] == 'boom'
        assert entity.compute_calls == 1, "reporting a failed entity must not retry"

    def test_to_json(self, tmp_path, needles):
        """to_json() encodes the report structure."""
        entity = StubEntity(tmp_path, 'home', needles)
        assert json.loads(entity.to_json()) == entity.to_report()
