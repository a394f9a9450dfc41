from __future__ import annotations

from gbook_dl.download import PageDownloader
from gbook_dl.session import Session
from gbook_dl.throttle import RequestGate

PNG = b"\x89PNG\r\n\x1a\nrest-of-png"
JPG = b"\xff\xd8\xff\xe0rest-of-jpeg"


def make_downloader(fake_http, gate) -> PageDownloader:
    return PageDownloader(http=fake_http, session=Session(cookie_header="NID=1"), gate=gate)


def test_one_missing_page_out_of_five_is_skipped(fake_http, gate, tmp_path) -> None:
    urls = [f"https://img.test/p?id=x&pg={i}" for i in range(5)]
    for i, url in enumerate(urls):
        fake_http.images[f"{url}&w=1280"] = (200, "image/jpeg", JPG)
    fake_http.images[f"{urls[2]}&w=1280"] = (404, "text/html", b"not found")

    summary = make_downloader(fake_http, gate).download(urls, tmp_path / "book")

    names = sorted(p.name for p in (tmp_path / "book").iterdir())
    assert names == ["page0.jpg", "page1.jpg", "page3.jpg", "page4.jpg"]
    assert len(summary.saved) == 4
    assert summary.skipped[0][0] == f"{urls[2]}&w=1280"
    assert summary.total == 5


def test_extension_follows_content_type(fake_http, gate, tmp_path) -> None:
    fake_http.images["https://img.test/a?x=1&w=1280"] = (200, "image/png", PNG)
    fake_http.images["https://img.test/b?x=1&w=1280"] = (200, "image/jpeg", JPG)

    summary = make_downloader(fake_http, gate).download(
        ["https://img.test/a?x=1", "https://img.test/b?x=1"], tmp_path
    )

    assert [p.name for p in summary.saved] == ["page0.png", "page1.jpg"]
    assert (tmp_path / "page0.png").read_bytes() == PNG
    assert (tmp_path / "page1.jpg").read_bytes() == JPG


def test_non_image_and_unreachable_pages_are_skipped(fake_http, gate, tmp_path) -> None:
    fake_http.images["https://img.test/a?x=1&w=1280"] = (200, "image/gif", b"GIF89a")
    fake_http.images["https://img.test/b?x=1&w=1280"] = (200, "", b"??")
    # c is not registered: the fake transport raises FetchError.

    summary = make_downloader(fake_http, gate).download(
        ["https://img.test/a?x=1", "https://img.test/b?x=1", "https://img.test/c?x=1"],
        tmp_path,
    )

    assert summary.saved == []
    assert len(summary.skipped) == 3
    assert list(tmp_path.iterdir()) == []


def test_blank_urls_are_dropped_before_numbering(fake_http, gate, tmp_path) -> None:
    fake_http.images["https://img.test/b?x=1&w=1280"] = (200, "image/png", PNG)
    summary = make_downloader(fake_http, gate).download(
        ["", "  ", "https://img.test/b?x=1"], tmp_path
    )
    assert [p.name for p in summary.saved] == ["page0.png"]


def test_waits_between_pages_but_not_after_last(fake_http, tmp_path) -> None:
    waits: list[int] = []

    class CountingGate(RequestGate):
        def wait(self) -> int:
            waits.append(len(fake_http.calls))
            return 0

    urls = [f"https://img.test/p?pg={i}" for i in range(3)]
    for url in urls:
        fake_http.images[f"{url}&w=1280"] = (200, "image/png", PNG)

    make_downloader(fake_http, CountingGate()).download(urls, tmp_path)

    assert waits == [1, 2]
    assert all(headers == {"Cookie": "NID=1"} for _, headers in fake_http.calls)
