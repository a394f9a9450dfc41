from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from .discovery import PageDiscovery
from .download import DownloadSummary, PageDownloader
from .errors import GbookError, NoPagesError
from .http_client import HttpClient
from .package import create_cbz
from .progress import ProgressObserver, TqdmProgress
from .session import Session, bootstrap
from .state import DiscoveryStore
from .throttle import RequestGate
from .urls import DEFAULT_BASE_URL, safe_filename_component

log = logging.getLogger(__name__)

BATCH_COOLDOWN_S = 30.0


@dataclass
class DownloadConfig:
    out_dir: Path = Path("downloads")
    create_cbz: bool = True
    cleanup: bool = True
    reuse_session: bool = False
    cooldown_s: float = BATCH_COOLDOWN_S
    base_url: str = DEFAULT_BASE_URL
    timeout_s: int = 45
    show_progress: bool = True


@dataclass
class DocumentResult:
    document_id: str
    title: str
    page_count: int
    summary: DownloadSummary
    pages_dir: Path
    archive_path: Path | None = None
    from_saved_urls: bool = False
    discovery_complete: bool = True


@dataclass
class BatchResult:
    results: list[DocumentResult] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def read_document_ids(arg: str) -> list[str]:
    """Return the ids listed in file ``arg``, or ``arg`` itself."""

    path = Path(arg)
    if path.is_file():
        return [
            line.strip()
            for line in path.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
    return [arg]


class DocumentPipeline:
    def __init__(
        self,
        *,
        http: HttpClient,
        config: DownloadConfig,
        gate: RequestGate | None = None,
        observer_factory: Callable[[], ProgressObserver] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.http = http
        self.cfg = config
        self.gate = gate or RequestGate()
        if observer_factory is None:
            observer_factory = TqdmProgress if config.show_progress else ProgressObserver
        self.observer_factory = observer_factory
        self._sleep = sleep
        self.store = DiscoveryStore(self.cfg.out_dir)
        self._session: Session | None = None

    def process(self, document_id: str) -> DocumentResult:
        observer = self.observer_factory()
        self.gate.on_tick = observer.on_wait_tick
        try:
            return self._process(document_id, observer)
        finally:
            self.gate.on_tick = None
            observer.close()

    def _process(self, document_id: str, observer: ProgressObserver) -> DocumentResult:
        log.info("Download book %s from %s", document_id, self.cfg.base_url)
        boot = bootstrap(
            self.http,
            document_id,
            base_url=self.cfg.base_url,
            gate=self.gate,
            reuse=self._session if self.cfg.reuse_session else None,
        )
        if self.cfg.reuse_session:
            self._session = boot.session

        self.cfg.out_dir.mkdir(parents=True, exist_ok=True)

        complete = True
        urls = self.store.try_load(document_id)
        from_saved = urls is not None
        if urls is None:
            discovery = PageDiscovery(
                http=self.http,
                base_url=self.cfg.base_url,
                session=boot.session,
                gate=self.gate,
                observer=observer,
            )
            pages = discovery.discover(document_id)
            complete = pages.complete
            if not len(pages):
                # Never persist an empty page list.
                raise NoPagesError(document_id)
            self.store.save(document_id, pages)
            urls = pages.urls()

        safe_title = safe_filename_component(boot.title, fallback=document_id)
        pages_dir = self.cfg.out_dir / safe_title
        if pages_dir.exists():
            shutil.rmtree(pages_dir)
        downloader = PageDownloader(
            http=self.http,
            session=boot.session,
            gate=self.gate,
            observer=observer,
        )
        summary = downloader.download(urls, pages_dir)

        result = DocumentResult(
            document_id=document_id,
            title=boot.title,
            page_count=summary.total,
            summary=summary,
            pages_dir=pages_dir,
            from_saved_urls=from_saved,
            discovery_complete=complete,
        )

        if self.cfg.create_cbz:
            result.archive_path = create_cbz(
                pages_dir, self.cfg.out_dir / f"{safe_title}.cbz"
            )
            if self.cfg.cleanup:
                shutil.rmtree(pages_dir)
                self.store.remove(document_id)

        log.info("Download finished: %s", boot.title)
        return result

    def run_batch(self, document_ids: Iterable[str]) -> BatchResult:
        """Process books one after another with a cooldown in between.

        A failing book is recorded and the batch moves on to the next id.
        """

        ids = list(document_ids)
        batch = BatchResult()
        for n, document_id in enumerate(ids):
            try:
                batch.results.append(self.process(document_id))
            except GbookError as e:
                log.error("%s", e)
                batch.failures[document_id] = str(e)

            if n < len(ids) - 1 and self.cfg.cooldown_s > 0:
                log.info(
                    "Waiting %g secs before downloading next book...",
                    self.cfg.cooldown_s,
                )
                self._sleep(self.cfg.cooldown_s)
        return batch
