"""Analysis report returned at the end of a run."""
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from .entity import AnalyzedEntity
from .errors import AnalysisFailure


class EntityStatus(str, Enum):
    USED = 'used'
    UNUSED = 'unused'
    INCOMPLETE = 'incomplete'


@dataclass
class AnalysisReport:
    """Entities of one type with their computed usage.

    The analyzer never decides what is dead. ``threshold`` only drives the
    convenience classification below: an entity with an attached error is
    INCOMPLETE (never UNUSED), one with no occurrences and a score at or
    below the threshold is UNUSED, anything else is USED.
    """
    entity_type: str
    root: Path
    entities: List[AnalyzedEntity] = field(default_factory=list)
    skipped_files: Dict[str, str] = field(default_factory=dict)
    discovery_errors: List[AnalysisFailure] = field(default_factory=list)
    threshold: int = 0

    def status_of(self, entity: AnalyzedEntity) -> EntityStatus:
        if entity.error is not None:
            return EntityStatus.INCOMPLETE
        usage, occurrences = entity.snapshot()
        if not occurrences and usage <= self.threshold:
            return EntityStatus.UNUSED
        return EntityStatus.USED

    def _with_status(self, status: EntityStatus) -> List[AnalyzedEntity]:
        return [e for e in self.entities if self.status_of(e) is status]

    def used(self) -> List[AnalyzedEntity]:
        return self._with_status(EntityStatus.USED)

    def unused(self) -> List[AnalyzedEntity]:
        return self._with_status(EntityStatus.UNUSED)

    def incomplete(self) -> List[AnalyzedEntity]:
        return self._with_status(EntityStatus.INCOMPLETE)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_files)

    def get(self, name: str) -> Optional[AnalyzedEntity]:
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None

    def to_dict(self) -> dict:
        entities = []
        for entity in self.entities:
            data = entity.to_report()
            data['status'] = self.status_of(entity).value
            entities.append(data)

        return {
            'entity_type': self.entity_type,
            'root': str(self.root),
            'threshold': self.threshold,
            'summary': {
                'total': len(self.entities),
                'used': len(self.used()),
                'unused': len(self.unused()),
                'incomplete': len(self.incomplete()),
                'skipped_files': self.skipped_count,
                'discovery_errors': len(self.discovery_errors),
            },
            'entities': entities,
            'skipped_files': dict(self.skipped_files),
            'discovery_errors': [failure.to_dict() for failure in self.discovery_errors],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
