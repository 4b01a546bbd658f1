"""Named routes and where they are linked to."""
import re
from typing import Iterator, List, Sequence

from usage_janitor.analyzer.analyzer import Analyzer, Candidate
from usage_janitor.analyzer.entity import AnalyzedEntity
from usage_janitor.analyzer.errors import ScanFileUnreadable
from usage_janitor.analyzer.needle import Needle, quoted


# Route name declarations across common routers
ROUTE_DECLARATIONS = [
    re.compile(r"""->name\(\s*['"]([\w.\-:]+)['"]\s*\)"""),       # Laravel ->name('x')
    re.compile(r"""['"]as['"]\s*=>\s*['"]([\w.\-:]+)['"]"""),      # Laravel 'as' => 'x'
    re.compile(r"""\bendpoint\s*=\s*['"]([\w.\-:]+)['"]"""),        # Flask endpoint='x'
    re.compile(r"""\bpath\([^)\n]*\bname\s*=\s*['"]([\w.\-:]+)['"]"""),  # Django path(..., name='x')
]

ROUTE_SOURCE_SUFFIXES = {'.php', '.py'}


# Start of a line holding nothing but a // or # comment
COMMENT_LINE = r"^[ \t]*(?://|#)"


def live_call(call: str) -> str:
    """``call`` on a line that is not commented out."""
    return r"(?m:^(?!" + COMMENT_LINE[1:] + r")[^\n]*?" + call + ")"


def only_commented_call(call: str) -> str:
    """``call`` on a comment line, in a file with no live ``call`` at all."""
    return (
        r"(?ms:\A(?!.*^(?!" + COMMENT_LINE[1:] + r")[^\n]*?" + call + ")"
        r".*" + COMMENT_LINE + r"[^\n]*?" + call + ")"
    )


class RouteEntity(AnalyzedEntity):
    """A named route, used when something generates a URL for it."""

    entity_type = 'route'

    def compute_usage_matrix(self) -> Sequence[Needle]:
        call = r"\broute\(\s*" + quoted(self.name)
        return [
            Needle('route-call', (live_call(call),), weight=10),
            Needle('url-for', (r"\burl_for\(\s*" + quoted(self.name),), weight=10),
            Needle('template-route', (r"\{\{\s*route\(\s*" + quoted(self.name),), weight=5),
            # Left over calls in comments count against the route
            Needle('commented-route', (only_commented_call(call),), weight=-10),
        ]


class RoutesAnalyzer(Analyzer):
    """Find named routes that no code or template links to."""

    entity_type = 'route'

    def discover_candidates(self) -> Iterator[Candidate]:
        for path, relative in self.scanner.files():
            if path.suffix not in ROUTE_SOURCE_SUFFIXES:
                continue
            try:
                text = self.scanner.read(path, relative)
            except ScanFileUnreadable:
                continue
            for name in declared_route_names(text):
                yield Candidate(name=name, defined_in=relative)

    def create_entity(self, candidate: Candidate) -> RouteEntity:
        return RouteEntity(
            self.root, candidate.name,
            defined_in=candidate.defined_in,
            needle_processor=self.needle_processor,
        )


def declared_route_names(text: str) -> List[str]:
    """Route names declared in a routes file, in order of appearance."""
    found = []
    for regex in ROUTE_DECLARATIONS:
        for match in regex.finditer(text):
            found.append((match.start(), match.group(1)))
    return list(dict.fromkeys(name for _, name in sorted(found)))
