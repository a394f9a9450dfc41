from __future__ import annotations

import logging
import re
import zipfile
from pathlib import Path

log = logging.getLogger(__name__)

_PAGE_INDEX = re.compile(r"^page(\d+)\.", re.IGNORECASE)


def _page_sort_key(path: Path) -> tuple[int, str]:
    m = _PAGE_INDEX.match(path.name)
    return (int(m.group(1)) if m else 1 << 30, path.name)


def create_cbz(src_dir: Path, dest: Path) -> Path:
    """Zip the page images in ``src_dir`` into a comic book archive.

    Entries are stored flat, without the directory name, in page order.
    """

    files = sorted((p for p in src_dir.iterdir() if p.is_file()), key=_page_sort_key)
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_name(dest.name + ".tmp")
    with zipfile.ZipFile(tmp, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in files:
            zf.write(path, arcname=path.name)
    tmp.replace(dest)
    log.info("Wrote %s (%d pages)", dest, len(files))
    return dest
