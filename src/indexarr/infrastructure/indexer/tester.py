"""Self-test of a definition against its live site."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from indexarr.domain.definitions import DefinitionError
from indexarr.domain.entities import ResultItem, TorznabQuery
from indexarr.domain.indexer import IndexerError
from indexarr.infrastructure.indexer.runner import Runner

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StageResult:
    stage: str
    passed: bool
    detail: str = ""


@dataclass
class TestReport:
    __test__ = False

    definition: str
    stages: list[StageResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(s.passed for s in self.stages)

    def failed(self) -> list[StageResult]:
        return [s for s in self.stages if not s.passed]


class Tester:
    """
    Runs ``login``, ``search`` (empty keywords), ``ratio`` (when declared)
    and ``download`` (first non-magnet item) and records each stage.
    Stage failures are recorded, never raised.
    """

    __test__ = False

    def __init__(self, runner: Runner, *, download: bool = True) -> None:
        self._runner = runner
        self._download = download

    async def run(self) -> TestReport:
        report = TestReport(definition=self._runner.key)

        ok = await self._stage(report, "login", self._login)
        items: list[ResultItem] = []
        if ok:
            items = await self._search(report)
        if ok and self._runner.definition.ratio is not None:
            await self._stage(report, "ratio", self._ratio)
        if ok and self._download:
            await self._download_first(report, items)

        log.info(
            "definition_tested",
            definition=report.definition,
            ok=report.ok,
            failed=[s.stage for s in report.failed()],
        )
        return report

    async def _stage(
        self,
        report: TestReport,
        stage: str,
        fn: Callable[[], Awaitable[str | None]],
    ) -> bool:
        try:
            detail = await fn()
        except (IndexerError, DefinitionError) as e:
            report.stages.append(StageResult(stage, False, str(e)))
            return False
        report.stages.append(StageResult(stage, True, detail or ""))
        return True

    async def _login(self) -> str:
        await self._runner.ensure_login()
        if not self._runner.definition.requires_login:
            return "no login required"
        return f"state={self._runner.state.value}"

    async def _search(self, report: TestReport) -> list[ResultItem]:
        items: list[ResultItem] = []

        async def search() -> str:
            items.extend(await self._runner.search(TorznabQuery()))
            if not items:
                raise IndexerError("search returned no results", stage="search")
            return f"{len(items)} results"

        await self._stage(report, "search", search)
        return items

    async def _ratio(self) -> str:
        ratio = await self._runner.ratio()
        if ratio is None:
            raise IndexerError("ratio selector did not match", stage="ratio")
        return ratio

    async def _download_first(
        self, report: TestReport, items: list[ResultItem]
    ) -> None:
        item = next((i for i in items if not i.is_magnet), None)
        if item is None:
            skipped = StageResult("download", True, "skipped: no torrent link")
            report.stages.append(skipped)
            return

        async def download() -> str:
            response = await self._runner.download(item.link)
            body = await response.read()
            if not body:
                raise IndexerError("download returned an empty body", stage="download")
            return f"{response.filename} ({len(body)} bytes)"

        await self._stage(report, "download", download)
