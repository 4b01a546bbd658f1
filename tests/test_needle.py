"""Tests for needle construction and matching."""
import pytest

from usage_janitor.analyzer.errors import InvalidNeedle
from usage_janitor.analyzer.needle import TARGET_PATH, Needle, quoted


class TestNeedleValidation:
    """Needles refuse malformed fields at construction."""

    def test_empty_patterns_rejected(self):
        """A needle needs at least one pattern."""
        with pytest.raises(InvalidNeedle):
            Needle('empty', ())

    def test_non_string_pattern_rejected(self):
        """Patterns must be strings."""
        with pytest.raises(InvalidNeedle):
            Needle('mixed', ('ok', 42))

    def test_blank_pattern_rejected(self):
        """An empty pattern would match everything."""
        with pytest.raises(InvalidNeedle):
            Needle('blank', ('',))

    def test_non_integer_weight_rejected(self):
        """Weights are whole numbers."""
        with pytest.raises(InvalidNeedle):
            Needle('float', ('x',), weight=1.5)
        with pytest.raises(InvalidNeedle):
            Needle('bool', ('x',), weight=True)

    def test_unknown_target_rejected(self):
        """Only content and path targets exist."""
        with pytest.raises(InvalidNeedle):
            Needle('where', ('x',), target='filename')

    def test_invalid_needle_is_a_value_error(self):
        """Callers catching ValueError still see needle errors."""
        with pytest.raises(ValueError):
            Needle('empty', [])


class TestNeedleBehaviour:

    def test_single_string_is_wrapped(self):
        """A bare string becomes a one-pattern tuple."""
        needle = Needle('one', 'home')
        assert needle.patterns == ('home',)

    def test_duplicate_patterns_collapsed_in_order(self):
        """Repeated patterns keep their first position."""
        needle = Needle('dupes', ('b', 'a', 'b'))
        assert needle.patterns == ('b', 'a')

    def test_zero_and_negative_weights_allowed(self):
        """Weights can be zero or negative."""
        assert Needle('neutral', ('x',), weight=0).weight == 0
        assert Needle('deprecated', ('x',), weight=-5).weight == -5

    def test_needles_are_immutable(self):
        """Needle fields cannot be reassigned."""
        needle = Needle('frozen', ('x',))
        with pytest.raises(AttributeError):
            needle.weight = 3

    def test_with_patterns_returns_new_needle(self):
        """with_patterns() leaves the original untouched."""
        needle = Needle('base', ('a',), weight=4)
        extended = needle.with_patterns('b', 'a')

        assert extended is not needle
        assert extended.patterns == ('a', 'b')
        assert extended.weight == 4
        assert needle.patterns == ('a',)

    def test_matches_any_pattern(self):
        """A needle matches when any of its patterns does."""
        needle = Needle('render', (r"render\('home'\)", r"view\('home'\)"))
        assert needle.matches("return view('home')")
        assert not needle.matches("return view('about')")

    def test_quoted_accepts_both_quote_styles(self):
        """quoted() accepts both quote styles and keeps dots literal."""
        needle = Needle('quoted', (quoted('admin.users'),))
        assert needle.matches("view('admin.users')")
        assert needle.matches('view("admin.users")')
        # The dot is literal
        assert not needle.matches("view('adminXusers')")

    def test_to_dict(self):
        """to_dict() lists name, patterns, weight and target."""
        needle = Needle('path', (r'\.css$',), weight=2, target=TARGET_PATH)
        assert needle.to_dict() == {
            'name': 'path',
            'patterns': [r'\.css$'],
            'weight': 2,
            'target': 'path',
        }
