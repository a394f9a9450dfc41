from __future__ import annotations

from pathlib import Path

from tqdm import tqdm


class ProgressObserver:
    """Receives progress notifications; every hook is a no-op by default."""

    def on_wait_tick(self, elapsed_ms: int, total_ms: int) -> None:
        pass

    def on_discovery_start(self, known: int, resolved: int) -> None:
        pass

    def on_page_discovered(self, known: int) -> None:
        pass

    def on_page_resolved(self, page_id: str) -> None:
        pass

    def on_discovery_end(self, resolved: int, known: int) -> None:
        pass

    def on_download_start(self, total: int) -> None:
        pass

    def on_page_fetched(self, index: int, path: Path | None) -> None:
        pass

    def on_download_end(self) -> None:
        pass

    def close(self) -> None:
        pass


class TqdmProgress(ProgressObserver):
    """Terminal progress bars for one book."""

    def __init__(self, *, leave: bool = False) -> None:
        self._leave = leave
        self._wait: tqdm | None = None
        self._discovery: tqdm | None = None
        self._download: tqdm | None = None

    def on_wait_tick(self, elapsed_ms: int, total_ms: int) -> None:
        if self._wait is None:
            self._wait = tqdm(desc="Waiting a little", unit="ms", leave=False)
        if self._wait.total != total_ms or elapsed_ms < self._wait.n:
            self._wait.reset(total=total_ms)
            self._wait.set_description(f"Wait {total_ms} ms")
        self._wait.update(elapsed_ms - self._wait.n)

    def on_discovery_start(self, known: int, resolved: int) -> None:
        self._discovery = tqdm(
            total=known,
            initial=resolved,
            desc=f"Getting {known} page urls",
            unit="url",
            leave=self._leave,
        )

    def on_page_discovered(self, known: int) -> None:
        if self._discovery is not None:
            self._discovery.total = known
            self._discovery.set_description(f"Getting {known} page urls")

    def on_page_resolved(self, page_id: str) -> None:
        if self._discovery is not None:
            self._discovery.update(1)
            self._discovery.set_postfix_str(page_id)

    def on_discovery_end(self, resolved: int, known: int) -> None:
        if self._discovery is not None:
            self._discovery.close()
            self._discovery = None

    def on_download_start(self, total: int) -> None:
        self._download = tqdm(
            total=total,
            desc=f"Downloading {total} pages",
            unit="page",
            leave=self._leave,
        )

    def on_page_fetched(self, index: int, path: Path | None) -> None:
        if self._download is not None:
            self._download.update(1)

    def on_download_end(self) -> None:
        if self._download is not None:
            self._download.close()
            self._download = None

    def close(self) -> None:
        for bar in (self._wait, self._discovery, self._download):
            if bar is not None:
                bar.close()
        self._wait = self._discovery = self._download = None
