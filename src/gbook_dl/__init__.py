"""gbook-dl core library.

Downloads the page images of a paginated book viewer into a directory and
optionally bundles them into a ``.cbz`` archive.

Page URLs are discovered by walking the viewer's neighbour-listing endpoint
and are cached per book, so a rerun goes straight to the image downloads.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
