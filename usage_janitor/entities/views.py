"""Template views and the code rendering or including them."""
import re
from typing import Iterable, Iterator, Optional, Sequence

from usage_janitor.analyzer.analyzer import Analyzer, Candidate
from usage_janitor.analyzer.entity import AnalyzedEntity
from usage_janitor.analyzer.needle import Needle, quoted


DEFAULT_VIEW_DIRS = ('resources/views', 'templates')

# Longest first so 'home.blade.php' loses '.blade.php', not just '.php'
VIEW_EXTENSIONS = ('.blade.php', '.html.twig', '.jinja2', '.jinja', '.html', '.twig', '.j2', '.php', '.view')

# Optional template extension on slash-form references
EXTENSION_PATTERN = "(?:" + "|".join(re.escape(ext) for ext in VIEW_EXTENSIONS) + ")?"


def strip_view_extension(filename: str) -> Optional[str]:
    for extension in VIEW_EXTENSIONS:
        if filename.endswith(extension) and len(filename) > len(extension):
            return filename[:-len(extension)]
    return None


class ViewEntity(AnalyzedEntity):
    """A template, named by its dotted path under the views directory."""

    entity_type = 'view'

    @property
    def slash_name(self) -> str:
        return self.name.replace('.', '/')

    def compute_usage_matrix(self) -> Sequence[Needle]:
        name = quoted(self.name)
        return [
            Needle('view-reference', (name,), weight=10),
            Needle('view-include', (
                r"@(?:include|extends|component)\(\s*" + name,
                r"\{%-?\s*(?:include|extends|import|from)\s+" + name,
            ), weight=5),
        ]

    def process_usage_needles(self, needle: Needle) -> Needle:
        """Also accept the slash form, with or without a template extension."""
        needle = super().process_usage_needles(needle)
        slash = re.escape(self.slash_name) + EXTENSION_PATTERN
        extra = tuple(
            pattern.replace(quoted(self.name), r"""['"]""" + slash + r"""['"]""")
            for pattern in needle.patterns
        )
        return needle.with_patterns(*extra)


class ViewsAnalyzer(Analyzer):
    """Find templates that are never rendered, included or extended."""

    entity_type = 'view'

    def __init__(self, root, view_dirs: Iterable[str] = DEFAULT_VIEW_DIRS, **kwargs):
        super().__init__(root, **kwargs)
        self.view_dirs = tuple(d.strip('/') for d in view_dirs)

    def discover_candidates(self) -> Iterator[Candidate]:
        for _, relative in self.scanner.files():
            for view_dir in self.view_dirs:
                prefix = view_dir + '/'
                if not relative.startswith(prefix):
                    continue
                stem = strip_view_extension(relative[len(prefix):])
                if stem:
                    yield Candidate(name=stem.replace('/', '.'), defined_in=relative)
                break

    def create_entity(self, candidate: Candidate) -> ViewEntity:
        return ViewEntity(
            self.root, candidate.name,
            defined_in=candidate.defined_in,
            needle_processor=self.needle_processor,
        )
