from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .discovery import DiscoveryMap

log = logging.getLogger(__name__)


@dataclass
class DiscoveryStore:
    """Saved page URL lists, one ``content-<id>.txt`` file per book."""

    out_dir: Path

    def path_for(self, document_id: str) -> Path:
        return self.out_dir / f"content-{document_id}.txt"

    def try_load(self, document_id: str) -> list[str] | None:
        path = self.path_for(document_id)
        if not path.exists():
            return None
        urls = [
            line.strip()
            for line in path.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        log.info("Loaded %d page urls from %s", len(urls), path)
        return urls

    def save(self, document_id: str, pages: DiscoveryMap) -> Path:
        path = self.path_for(document_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        urls = pages.urls()
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(
            "\n".join(urls) + ("\n" if urls else ""),
            encoding="utf-8",
            newline="\n",
        )
        os.replace(tmp_path, path)
        log.debug("Saved %d page urls to %s", len(urls), path)
        return path

    def remove(self, document_id: str) -> None:
        self.path_for(document_id).unlink(missing_ok=True)
