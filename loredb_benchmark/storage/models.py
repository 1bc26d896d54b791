"""Pydantic models for the benchmark history document."""

import logging
import re
import time
from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    SerializationInfo,
    SerializerFunctionWrapHandler,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    model_serializer,
    model_validator,
)

logger = logging.getLogger(__name__)

# Validation context for documents read from JSON: keys given as null are kept
KEEP_NULLS = {"keep_nulls": True}

EXTRA_PATTERN = re.compile(
    r"^iterations:\s*(?P<iterations>\d+)\s*\n"
    r"cpu:\s*(?P<cpu>[-+0-9.eE]+|NaN|Infinity)\s+(?P<unit>\S+)\s*\n"
    r"threads:\s*(?P<threads>\d+)\s*$"
)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class DocumentModel(BaseModel):
    """Model written back with the key order it was read with.

    Keys present in the input come first, in input order. Fields that were
    not in the input follow in declaration order, omitted when None.
    """

    model_config = ConfigDict(extra="allow")

    _source_keys: tuple[str, ...] = PrivateAttr(default=())

    @model_validator(mode="wrap")
    @classmethod
    def _remember_keys(cls, data: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Self:
        model = handler(data)
        if isinstance(data, dict):
            keep_nulls = bool(info.context and info.context.get("keep_nulls"))
            by_alias = {field.alias: name for name, field in cls.model_fields.items() if field.alias}
            model._source_keys = tuple(
                by_alias.get(key, key) for key, value in data.items() if keep_nulls or value is not None
            )
        return model

    @model_serializer(mode="wrap")
    def _dump_in_source_order(self, handler: SerializerFunctionWrapHandler, info: SerializationInfo) -> dict[str, Any]:
        dumped = handler(self)
        fields = type(self).model_fields

        ordered = {}
        for name in self._source_keys:
            field = fields.get(name)
            key = field.alias if info.by_alias and field is not None and field.alias else name
            if key in dumped:
                ordered[key] = dumped[key]
        for key, value in dumped.items():
            if key not in ordered and value is not None:
                ordered[key] = value
        return ordered


class Actor(DocumentModel):
    """Author or committer of a commit."""

    email: str | None = None
    name: str
    username: str | None = None


class Commit(DocumentModel):
    """Commit descriptor identifying the revision a benchmark run belongs to."""

    author: Actor
    committer: Actor
    distinct: bool | None = None
    id: str = Field(description="Full commit SHA")
    message: str
    timestamp: str = Field(description="ISO-8601 commit timestamp")
    tree_id: str | None = None
    url: str

    @property
    def short_id(self) -> str:
        """Abbreviated SHA used in tables and comments."""
        return self.id[:7]


class BenchExtra(BaseModel):
    """Structured view of the googlecpp ``extra`` text."""

    iterations: int
    cpu_time: float
    time_unit: str
    threads: int

    @classmethod
    def from_text(cls, text: str | None) -> Self | None:
        """Parse ``iterations: N\\ncpu: X unit\\nthreads: T``.

        Returns:
            Parsed extra fields, or None when the text has a different shape
        """
        if not text:
            return None
        match = EXTRA_PATTERN.match(text.strip())
        if match is None:
            return None
        return cls(
            iterations=int(match.group("iterations")),
            cpu_time=float(match.group("cpu")),
            time_unit=match.group("unit"),
            threads=int(match.group("threads")),
        )


class BenchmarkResult(DocumentModel):
    """One named measurement within an entry."""

    name: str
    value: float
    range: str | None = None
    unit: str
    extra: str | None = None

    def parsed_extra(self) -> BenchExtra | None:
        """Return the extra text parsed into iteration/cpu/thread fields."""
        return BenchExtra.from_text(self.extra)


class BenchmarkEntry(DocumentModel):
    """All measurements recorded for one commit by one tool."""

    commit: Commit
    date: int = Field(description="Entry creation time (epoch ms)")
    tool: str
    benches: list[BenchmarkResult] = Field(default_factory=list)

    def bench(self, name: str) -> BenchmarkResult | None:
        """Look up a measurement by benchmark name."""
        for result in self.benches:
            if result.name == name:
                return result
        return None

    def bench_names(self) -> list[str]:
        return [result.name for result in self.benches]


class BenchmarkData(DocumentModel):
    """Root of the data.js document: suites of entries keyed by suite name."""

    model_config = ConfigDict(populate_by_name=True)

    last_update: int = Field(default=0, alias="lastUpdate")
    repo_url: str = Field(default="", alias="repoUrl")
    entries: dict[str, list[BenchmarkEntry]] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> Self:
        """Document used when no history file exists yet."""
        return cls(last_update=0, repo_url="", entries={})

    def to_document(self) -> dict[str, Any]:
        """Convert to the plain dictionary written to disk."""
        return self.model_dump(by_alias=True)

    def suite_names(self) -> list[str]:
        return list(self.entries)

    def suite(self, name: str) -> list[BenchmarkEntry]:
        """Entries of a suite, oldest first (empty if unknown)."""
        return self.entries.get(name, [])

    def latest(self, suite: str) -> BenchmarkEntry | None:
        entries = self.suite(suite)
        return entries[-1] if entries else None

    def find_entry(self, suite: str, commit_id: str) -> BenchmarkEntry | None:
        """Find the most recent entry whose commit SHA starts with ``commit_id``."""
        for entry in reversed(self.suite(suite)):
            if entry.commit.id.startswith(commit_id):
                return entry
        return None

    def add_entry(
        self,
        suite: str,
        entry: BenchmarkEntry,
        max_items: int | None = None,
        repo_url: str | None = None,
        timestamp_ms: int | None = None,
    ) -> BenchmarkEntry | None:
        """Append an entry to a suite.

        Args:
            suite: Suite name (created on first use)
            entry: Entry to append
            max_items: Keep at most this many entries in the suite
            repo_url: Repository URL to record, if known
            timestamp_ms: Value for lastUpdate (defaults to now)

        Returns:
            Most recent earlier entry with a different commit, used as the
            comparison baseline, or None
        """
        self.last_update = timestamp_ms if timestamp_ms is not None else now_ms()
        if repo_url is not None:
            self.repo_url = repo_url

        if suite not in self.entries:
            self.entries[suite] = [entry]
            logger.debug(f"Created new suite '{suite}'")
            return None

        entries = self.entries[suite]
        previous = None
        for candidate in reversed(entries):
            if candidate.commit.id != entry.commit.id:
                previous = candidate
                break

        entries.append(entry)
        if max_items is not None and len(entries) > max_items:
            dropped = len(entries) - max_items
            del entries[:dropped]
            logger.info(f"Dropped {dropped} old entries from suite '{suite}' (max {max_items})")

        return previous

    def remove_entries(self, suite: str, commit_id: str) -> int:
        """Remove every entry of a suite whose SHA starts with ``commit_id``.

        A suite left without entries is removed as well.

        Returns:
            Number of entries removed
        """
        entries = self.suite(suite)
        kept = [e for e in entries if not e.commit.id.startswith(commit_id)]
        removed = len(entries) - len(kept)
        if kept:
            self.entries[suite] = kept
        elif removed:
            del self.entries[suite]
            logger.info(f"Removed empty suite '{suite}'")
        return removed
