from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .errors import FetchError
from .http_client import HttpClient
from .progress import ProgressObserver
from .session import Session
from .throttle import RequestGate
from .urls import large_image_url

log = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
}


@dataclass
class DownloadSummary:
    saved: list[Path] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.saved) + len(self.skipped)


class PageDownloader:
    def __init__(
        self,
        *,
        http: HttpClient,
        session: Session,
        gate: RequestGate,
        observer: ProgressObserver | None = None,
    ) -> None:
        self.http = http
        self.session = session
        self.gate = gate
        self.observer = observer or ProgressObserver()

    def _fetch_page(self, url: str, dest_dir: Path, index: int) -> Path:
        """Stream one page image to ``page<index>.<ext>``.

        Raises ValueError for responses that are not a usable image.
        """

        with self.http.stream(url, headers=self.session.headers()) as resp:
            media_type = resp.media_type
            ext = IMAGE_EXTENSIONS.get(media_type)
            if not resp.ok or ext is None:
                raise ValueError(f"{resp.status_code}, {media_type or 'no content type'}")

            path = dest_dir / f"page{index}.{ext}"
            with path.open("wb") as f:
                for chunk in resp.iter_chunks():
                    f.write(chunk)
        return path

    def download(self, urls: Iterable[str], dest_dir: Path) -> DownloadSummary:
        pages = [u.strip() for u in urls if u and u.strip()]
        dest_dir.mkdir(parents=True, exist_ok=True)
        summary = DownloadSummary()

        self.observer.on_download_start(len(pages))
        for index, page_url in enumerate(pages):
            url = large_image_url(page_url)
            path: Path | None
            try:
                path = self._fetch_page(url, dest_dir, index)
            except (FetchError, OSError, ValueError) as e:
                log.warning("ERROR: %s (%s)", url, e)
                summary.skipped.append((url, str(e)))
                path = None
            else:
                summary.saved.append(path)

            self.observer.on_page_fetched(index, path)
            if index < len(pages) - 1:
                self.gate.wait()
        self.observer.on_download_end()

        log.info(
            "Downloaded %d of %d pages to %s",
            len(summary.saved),
            len(pages),
            dest_dir,
        )
        return summary
