"""Collect reconciliation results across a test run.

Each pytest-xdist worker appends its results to its own JSON file
(``worker-<index>.json``) in the results directory, so no locking is needed.
The controller process clears the directory before any worker starts and
merges the files once after every worker has finished.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import ReconciliationError
from .reconciler import Reconciliation

logger = logging.getLogger(__name__)

RESULT_FILE_PREFIX = "worker-"
RESULT_FILE_SUFFIX = ".json"
UNCATEGORIZED = "Uncategorized"

SUMMARY_TITLE = "FINAL AGGREGATE TEST SUMMARY"
SUMMARY_RULE = "==================================="

_WORKER_DIGITS = re.compile(r"(\d+)$")


@dataclass
class TestResult:
    """Issues found for one (user, heading) pair in one category."""

    __test__ = False  # not a pytest test class

    user: str
    issues: List[str] = field(default_factory=list)
    heading: Optional[str] = None
    category: Optional[str] = None

    @property
    def passed(self) -> bool:
        return not self.issues

    @property
    def label(self) -> str:
        return f"{self.heading} [{self.user}]" if self.heading else self.user

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "heading": self.heading,
            "category": self.category,
            "issues": list(self.issues),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TestResult":
        return cls(
            user=data.get("user", ""),
            issues=list(data.get("issues") or []),
            heading=data.get("heading"),
            category=data.get("category"),
        )


def worker_index(worker_id: Optional[str]) -> int:
    """Map a pytest-xdist worker id (``gw0``, ``gw1``...) to its index.

    Runs without xdist (``None`` or ``"master"``) use index 0.
    """
    if not worker_id:
        return 0
    match = _WORKER_DIGITS.search(worker_id)
    return int(match.group(1)) if match else 0


def result_file(directory: Union[str, Path], index: int) -> Path:
    return Path(directory) / f"{RESULT_FILE_PREFIX}{index}{RESULT_FILE_SUFFIX}"


def _worker_files(directory: Path) -> List[Path]:
    if not directory.exists():
        return []
    files = []
    for path in directory.iterdir():
        name = path.name
        if not (name.startswith(RESULT_FILE_PREFIX) and name.endswith(RESULT_FILE_SUFFIX)):
            continue
        digits = name[len(RESULT_FILE_PREFIX):-len(RESULT_FILE_SUFFIX)]
        if digits.isdigit():
            files.append((int(digits), path))
    return [path for _, path in sorted(files)]


def _read_results(path: Path) -> List[TestResult]:
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise ValueError(f"Result file {path} must hold a JSON array")
    return [TestResult.from_dict(entry) for entry in data]


class ResultStore:
    """Per-worker result file, owned exclusively by one worker process."""

    def __init__(self, directory: Union[str, Path], worker_id: Optional[str] = None) -> None:
        self.directory = Path(directory)
        self.index = worker_index(worker_id)
        self.path = result_file(self.directory, self.index)

    def __repr__(self) -> str:
        return f"ResultStore(path={self.path})"

    def read(self) -> List[TestResult]:
        if not self.path.exists():
            return []
        return _read_results(self.path)

    def push(self, result: TestResult) -> TestResult:
        """Append ``result`` and rewrite the worker file."""
        results = self.read()
        results.append(result)

        self.directory.mkdir(parents=True, exist_ok=True)
        # Write atomically (write to temp, then rename)
        temp_file = self.path.with_suffix(".tmp")
        with temp_file.open("w", encoding="utf-8") as handle:
            json.dump([r.to_dict() for r in results], handle, indent=2)
        temp_file.replace(self.path)

        logger.debug(f"Stored result for {result.label} in {self.path.name} ({len(result.issues)} issue(s))")
        return result

    def record(
        self,
        user: str,
        issues: Union[Reconciliation, Iterable[str]],
        heading: Optional[str] = None,
        category: Optional[str] = None,
    ) -> TestResult:
        """Build a ``TestResult`` from a reconciliation (or issue lines) and push it."""
        lines = issues.issues if isinstance(issues, Reconciliation) else list(issues)
        return self.push(TestResult(user=user, issues=lines, heading=heading, category=category))


def clear_results(directory: Union[str, Path]) -> int:
    """Delete every worker result file. Run once, before workers start.

    Returns:
        Number of files removed.
    """
    removed = 0
    for path in _worker_files(Path(directory)):
        path.unlink()
        removed += 1
    if removed:
        logger.info(f"Cleared {removed} result file(s) from {directory}")
    return removed


def merge_results(directory: Union[str, Path], *, remove: bool = False) -> List[TestResult]:
    """Read every worker file in worker-index order. Run once, after workers finish.

    Args:
        directory: Results directory shared by the workers.
        remove: Delete the worker files after reading them.
    """
    merged: List[TestResult] = []
    for path in _worker_files(Path(directory)):
        merged.extend(_read_results(path))
        if remove:
            path.unlink()
    return merged


@dataclass
class Summary:
    """Run-level pass/fail plus the formatted report."""

    title: str
    categories: Dict[str, List[TestResult]]

    @property
    def results(self) -> List[TestResult]:
        return [result for results in self.categories.values() for result in results]

    @property
    def passed(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def failing_categories(self) -> List[str]:
        return [name for name, results in self.categories.items() if not all(r.passed for r in results)]

    @property
    def passing_categories(self) -> List[str]:
        return [name for name, results in self.categories.items() if all(r.passed for r in results)]

    @property
    def issue_count(self) -> int:
        return sum(len(result.issues) for result in self.results)

    def lines(self) -> List[str]:
        lines = [f"===== {self.title} ====="]
        for category, results in self.categories.items():
            lines.append("")
            lines.append(f"--- {category.upper()} ---")
            for result in results:
                if result.issues:
                    lines.append(f"❌ {result.label}:")
                    lines.extend(f"   - {issue}" for issue in result.issues)
                else:
                    lines.append(f"✅ {result.label}: No issues")
        lines.append(SUMMARY_RULE)
        return lines

    def render(self) -> str:
        return "\n".join(self.lines())


def summarize(results: Iterable[TestResult], title: str = SUMMARY_TITLE) -> Summary:
    """Group results by category, keeping first-seen category order.

    A failing category never stops the others from being reported; the
    overall verdict is the AND over every entry.
    """
    categories: Dict[str, List[TestResult]] = {}
    for result in results:
        categories.setdefault(result.category or UNCATEGORIZED, []).append(result)
    return Summary(title=title, categories=categories)


@dataclass
class CheckSummary:
    """Per-test summary block built by ``assert_no_issues``."""

    lines: List[str]
    any_issues: bool
    failures: List[Tuple[str, List[str]]] = field(default_factory=list)

    def render(self) -> str:
        return "\n".join(self.lines)


def assert_no_issues(
    results: Iterable[Union[Tuple[str, Sequence[str]], Mapping[str, Any]]],
    title: str,
) -> CheckSummary:
    """Summarise several labelled issue lists from one test.

    Only failing labels are listed. Accepts ``(label, issues)`` pairs or
    ``{"label": ..., "issues": ...}`` mappings.
    """
    lines = [f"===== {title} ====="]
    failures: List[Tuple[str, List[str]]] = []
    for item in results:
        if isinstance(item, Mapping):
            label, issues = item["label"], item["issues"]
        else:
            label, issues = item
        if isinstance(issues, Reconciliation):
            issues = issues.issues
        if issues:
            failures.append((label, list(issues)))
            lines.append(f"❌ {label}:")
            lines.extend(f"   - {issue}" for issue in issues)
    lines.append(SUMMARY_RULE)
    return CheckSummary(lines=lines, any_issues=bool(failures), failures=failures)


def raise_for_issues(label: str, issues: Union[Reconciliation, CheckSummary, Iterable[str]]) -> None:
    """Raise ``ReconciliationError`` listing every discrepancy, if there are any."""
    if isinstance(issues, Reconciliation):
        lines = issues.issues
    elif isinstance(issues, CheckSummary):
        lines = [f"{label}: {issue}" for label, failed in issues.failures for issue in failed]
    else:
        lines = list(issues)
    if lines:
        raise ReconciliationError(label, lines)
