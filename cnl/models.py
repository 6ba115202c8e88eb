"""Data carried through a Click'n'Load submission.

Field names on the wire (cache snapshots, API responses) are camelCase so
that snapshots written by earlier deployments stay readable.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utc_timestamp() -> str:
    """ISO8601 UTC timestamp with millisecond precision and a Z suffix (lexicographically sortable)."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class ProcessedLink:
    original: str
    processed: str
    success: bool
    processed_at: str
    error: Optional[str] = None
    filename: Optional[str] = None
    filesize: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'original': self.original,
            'processed': self.processed,
            'success': self.success,
            'processedAt': self.processed_at,
        }
        if self.error is not None:
            data['error'] = self.error
        if self.filename is not None:
            data['filename'] = self.filename
        if self.filesize is not None:
            data['filesize'] = self.filesize
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessedLink':
        original = data.get('original', '')
        return cls(
            original=original,
            processed=data.get('processed') or original,
            success=bool(data.get('success', False)),
            processed_at=data.get('processedAt', ''),
            error=data.get('error'),
            filename=data.get('filename'),
            filesize=data.get('filesize'),
        )


@dataclass
class ProcessingStats:
    processed_at: str
    debrid_service: str
    total_links: int
    valid_links: int
    skipped_links: int
    success_count: int
    failure_count: int
    success_rate: float
    processing_time_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'processedAt': self.processed_at,
            'debridService': self.debrid_service,
            'totalLinks': self.total_links,
            'validLinks': self.valid_links,
            'skippedLinks': self.skipped_links,
            'successCount': self.success_count,
            'failureCount': self.failure_count,
            'successRate': self.success_rate,
            'processingTimeMs': self.processing_time_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessingStats':
        return cls(
            processed_at=data.get('processedAt', ''),
            debrid_service=data.get('debridService', ''),
            total_links=int(data.get('totalLinks', 0)),
            valid_links=int(data.get('validLinks', 0)),
            skipped_links=int(data.get('skippedLinks', 0)),
            success_count=int(data.get('successCount', 0)),
            failure_count=int(data.get('failureCount', 0)),
            success_rate=float(data.get('successRate', 0)),
            processing_time_ms=int(data.get('processingTimeMs', 0)),
        )


@dataclass
class ProcessingResult:
    results: List[ProcessedLink]
    stats: ProcessingStats

    @property
    def successful_links(self) -> List[ProcessedLink]:
        return [link for link in self.results if link.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': [link.to_dict() for link in self.results],
            'stats': self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessingResult':
        return cls(
            results=[ProcessedLink.from_dict(item) for item in data.get('results', [])],
            stats=ProcessingStats.from_dict(data.get('stats', {})),
        )


@dataclass
class CnlPackage:
    """One Click'n'Load batch. `decrypted` is set by the codec, `files` by the batch processor."""
    crypted: str
    jk: str
    passwords: str = ''
    package: str = ''
    source: str = ''
    decrypted: Optional[str] = None
    files: Optional[ProcessingResult] = field(default=None)

    @classmethod
    def from_form(cls, form) -> 'CnlPackage':
        """Build a package from the five addcrypted2 form fields."""
        return cls(
            crypted=form.get('crypted') or '',
            jk=form.get('jk') or '',
            passwords=form.get('passwords') or '',
            package=form.get('package') or '',
            source=form.get('source') or '',
        )

    def evolve(self, **changes) -> 'CnlPackage':
        return replace(self, **changes)

    def form_fields(self) -> Dict[str, str]:
        """The five-field addcrypted2 contract."""
        return {
            'passwords': self.passwords or '',
            'source': self.source or '',
            'package': self.package or '',
            'jk': self.jk,
            'crypted': self.crypted,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'crypted': self.crypted,
            'jk': self.jk,
            'passwords': self.passwords,
            'package': self.package,
            'source': self.source,
        }
        if self.decrypted is not None:
            data['decrypted'] = self.decrypted
        if self.files is not None:
            data['files'] = self.files.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CnlPackage':
        files = data.get('files')
        return cls(
            crypted=data.get('crypted') or '',
            jk=data.get('jk') or '',
            passwords=data.get('passwords') or '',
            package=data.get('package') or '',
            source=data.get('source') or '',
            decrypted=data.get('decrypted'),
            files=ProcessingResult.from_dict(files) if files else None,
        )
