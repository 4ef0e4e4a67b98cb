"""File share aging statistics"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core.interfaces import ILocalReport
from ..core.models import AgeBasis, ReportConfiguration, ReportResult, ShareAgingBucket
from ..utils.filters import matches_any
from ..utils.logger import setup_logger

TOTAL_FOLDER = "(total)"
ROOT_FOLDER = "."
SECONDS_PER_DAY = 86400


def bucket_labels(thresholds: List[int]) -> List[str]:
    """Labels for age buckets bounded by ascending day thresholds"""
    labels = []
    lower = 0
    for threshold in thresholds:
        labels.append(f"{lower}-{threshold} days")
        lower = threshold + 1
    labels.append(f"over {thresholds[-1]} days")
    return labels


def bucket_index(age_days: float, thresholds: List[int]) -> int:
    for index, threshold in enumerate(thresholds):
        if age_days <= threshold:
            return index
    return len(thresholds)


class ShareAgingReport(ILocalReport):
    """Counts files and bytes per age bucket, per top-level folder of a share"""

    def __init__(
        self,
        root: str,
        include_patterns: Optional[List[str]] = None,
        exclude_patterns: Optional[List[str]] = None,
        basis: AgeBasis = AgeBasis.MODIFIED,
        now: Optional[datetime] = None,
    ):
        self.logger = setup_logger(self.__class__.__name__)
        self.root = Path(root)
        self.include_patterns = include_patterns or []
        self.exclude_patterns = exclude_patterns or []
        self.basis = basis
        self.now = now

    def get_report_name(self) -> str:
        return "ShareAgingReport"

    def get_columns(self) -> List[str]:
        return ['folder', 'bucket', 'file_count', 'total_bytes']

    def generate(self, config: ReportConfiguration) -> ReportResult:
        thresholds = list(config.share_age_thresholds)
        labels = bucket_labels(thresholds)
        now = (self.now or datetime.now(timezone.utc)).timestamp()

        result = ReportResult(report_name=self.get_report_name(), timestamp=datetime.now(timezone.utc))

        if not self.root.is_dir():
            message = f"Share path is not a readable directory: {self.root}"
            self.logger.error(message)
            result.errors.append(message)
            return result

        def _on_walk_error(error: OSError) -> None:
            message = f"Cannot read {error.filename}: {error.strerror}"
            self.logger.warning(message)
            result.warnings.append(message)

        stats: Dict[Tuple[str, int], List[int]] = {}
        scanned = 0
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_on_walk_error):
            dirnames.sort()
            folder = self._top_level_folder(Path(dirpath))
            for filename in sorted(filenames):
                if not matches_any(filename, self.include_patterns):
                    continue
                if self.exclude_patterns and matches_any(filename, self.exclude_patterns):
                    continue

                path = Path(dirpath) / filename
                try:
                    file_stat = path.stat()
                except OSError as e:
                    _on_walk_error(e)
                    continue

                timestamp = file_stat.st_atime if self.basis == AgeBasis.ACCESSED else file_stat.st_mtime
                age_days = max(0.0, (now - timestamp) / SECONDS_PER_DAY)
                index = bucket_index(age_days, thresholds)

                for key in ((folder, index), (TOTAL_FOLDER, index)):
                    counters = stats.setdefault(key, [0, 0])
                    counters[0] += 1
                    counters[1] += file_stat.st_size
                scanned += 1

                if scanned % 10000 == 0:
                    self.logger.info(f"Scanned {scanned} files...")

        folders = sorted({folder for folder, _ in stats if folder != TOTAL_FOLDER})
        for folder in folders:
            for index, label in enumerate(labels):
                counters = stats.get((folder, index))
                if counters is None:
                    continue
                result.records.append(ShareAgingBucket(folder, label, counters[0], counters[1]))

        for index, label in enumerate(labels):
            count, size = stats.get((TOTAL_FOLDER, index), [0, 0])
            result.records.append(ShareAgingBucket(TOTAL_FOLDER, label, count, size))

        self.logger.info(f"Scanned {scanned} files under {self.root}")
        return result

    def _top_level_folder(self, directory: Path) -> str:
        relative = directory.relative_to(self.root)
        return relative.parts[0] if relative.parts else ROOT_FOLDER

    def summarize(self, records: List[ShareAgingBucket]) -> Dict[str, Any]:
        totals = [r for r in records if r.folder == TOTAL_FOLDER]
        total_bytes = sum(r.total_bytes for r in totals)
        return {
            'folder_count': len({r.folder for r in records if r.folder != TOTAL_FOLDER}),
            'file_count': sum(r.file_count for r in totals),
            'total_gb': round(total_bytes / (1024 ** 3), 3),
            'bytes_by_bucket': {r.bucket: r.total_bytes for r in totals},
        }
