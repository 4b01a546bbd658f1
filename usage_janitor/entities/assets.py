"""Static assets and the markup or code pointing at them."""
import re
from pathlib import PurePosixPath
from typing import Iterable, Iterator, Sequence

from usage_janitor.analyzer.analyzer import Analyzer, Candidate
from usage_janitor.analyzer.entity import AnalyzedEntity
from usage_janitor.analyzer.needle import Needle


DEFAULT_ASSET_DIRS = ('public', 'static')

ASSET_SUFFIXES = {
    '.css', '.js', '.mjs', '.map',
    '.png', '.jpg', '.jpeg', '.gif', '.svg', '.webp', '.ico',
    '.woff', '.woff2', '.ttf', '.eot',
}


class AssetEntity(AnalyzedEntity):
    """A static file, named by its path under the asset directory."""

    entity_type = 'asset'

    def compute_usage_matrix(self) -> Sequence[Needle]:
        basename = PurePosixPath(self.name).name
        needles = [Needle('asset-path', (re.escape(self.name),), weight=10)]
        if basename != self.name:
            # Bare file names are weaker evidence (often shared across dirs)
            needles.append(Needle('asset-basename', (r"(?<![\w.\-])" + re.escape(basename),), weight=5))
        return needles


class AssetsAnalyzer(Analyzer):
    """Find assets no template, stylesheet or script refers to."""

    entity_type = 'asset'

    def __init__(self, root, asset_dirs: Iterable[str] = DEFAULT_ASSET_DIRS, **kwargs):
        super().__init__(root, **kwargs)
        self.asset_dirs = tuple(d.strip('/') for d in asset_dirs)

    def discover_candidates(self) -> Iterator[Candidate]:
        for path, relative in self.scanner.files():
            if path.suffix.lower() not in ASSET_SUFFIXES:
                continue
            for asset_dir in self.asset_dirs:
                prefix = asset_dir + '/'
                if relative.startswith(prefix):
                    yield Candidate(name=relative[len(prefix):], defined_in=relative)
                    break

    def create_entity(self, candidate: Candidate) -> AssetEntity:
        return AssetEntity(
            self.root, candidate.name,
            defined_in=candidate.defined_in,
            needle_processor=self.needle_processor,
        )
