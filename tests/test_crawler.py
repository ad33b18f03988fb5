import json
import random

import pytest

from site_mirror.crawler import RenderResult, ResourceResponse
from site_mirror.crawler.archiver import resource_path_for

from .conftest import StubRenderer, page


SEED = "https://a.com/x/"


@pytest.mark.asyncio
async def test_depth_zero_saves_seed_only(make_crawler, tmp_path):
    renderer = StubRenderer({
        SEED: page("/x/a", "/x/b", "https://other.com/"),
    })
    crawler = make_crawler(SEED, renderer, max_depth=0)

    result = await crawler.crawl()

    assert renderer.rendered == [SEED]
    assert result.pages_saved == 1
    assert (tmp_path / "out" / "a.com" / "x" / "index.html").exists()
    assert renderer.started and renderer.stopped


@pytest.mark.asyncio
async def test_retry_until_success(make_crawler, sleep_recorder):
    renderer = StubRenderer(
        {SEED: page()},
        failures={SEED: [
            RenderResult(url=SEED),
            RenderResult(url=SEED, final_url=SEED, status=503),
        ]}
    )
    crawler = make_crawler(SEED, renderer)

    result = await crawler.crawl()

    assert result.pages_saved == 1
    assert result.retries == 2
    assert sleep_recorder.calls == [10.0, 10.0]
    assert renderer.rendered == [SEED, SEED, SEED]


@pytest.mark.asyncio
async def test_blocked_page_is_retried(make_crawler, sleep_recorder, tmp_path):
    challenge = '<html><head><meta name="captcha-bypass"></head><body>verify</body></html>'
    renderer = StubRenderer(
        {SEED: page(body="real content")},
        failures={SEED: [RenderResult(url=SEED, final_url=SEED, status=200, html=challenge)]}
    )
    crawler = make_crawler(SEED, renderer, retry_delay=3.0)

    result = await crawler.crawl()

    assert sleep_recorder.calls == [3.0]
    assert result.pages_saved == 1
    saved = (tmp_path / "out" / "a.com" / "x" / "index.html").read_text(encoding="utf-8")
    assert "real content" in saved


@pytest.mark.asyncio
async def test_retry_cap_gives_up_and_continues(make_crawler, sleep_recorder, tmp_path):
    broken = "https://a.com/x/broken"
    renderer = StubRenderer(
        {SEED: page("/x/broken", "/x/fine"), "https://a.com/x/fine": page()},
        failures={broken: [RenderResult(url=broken)] * 5}
    )
    crawler = make_crawler(SEED, renderer, max_retries=2, random_wait=False, wait=0)

    result = await crawler.crawl()

    assert renderer.rendered.count(broken) == 3
    assert result.failed == [broken]
    assert sorted(result.pages) == [SEED, "https://a.com/x/fine"]
    assert sleep_recorder.calls == [10.0, 10.0]
    assert broken in crawler.visited

    errors = json.loads((tmp_path / "out" / "errors.json").read_text(encoding="utf-8"))
    assert errors[0]['type'] == 'retries_exhausted'


@pytest.mark.asyncio
async def test_traversal_is_depth_first(make_crawler):
    renderer = StubRenderer({
        SEED: page("/x/a/", "/x/b/"),
        "https://a.com/x/a/": page("/x/a/deep"),
        "https://a.com/x/b/": page("/x/b/deep"),
    })
    crawler = make_crawler(SEED, renderer, rng=random.Random(7))

    await crawler.crawl()

    rendered = renderer.rendered
    assert rendered[0] == SEED
    assert len(rendered) == 5
    # each child's subtree is finished before its sibling starts
    assert rendered[2] == rendered[1] + "deep"
    assert rendered[4] == rendered[3] + "deep"


@pytest.mark.asyncio
async def test_scope_and_dedup_during_crawl(make_crawler):
    renderer = StubRenderer({
        SEED: page("/x/a", "/z/outside", "/x/a#frag", "#top", "https://other.com/"),
        "https://a.com/x/a": page("/x/", "/x/a"),
        "https://other.com/": page("/anything"),
    })
    crawler = make_crawler(SEED, renderer, max_depth=1)

    await crawler.crawl()

    assert sorted(renderer.rendered) == sorted([SEED, "https://a.com/x/a", "https://other.com/"])
    assert "https://a.com/z/outside" not in renderer.rendered


@pytest.mark.asyncio
async def test_politeness_delay_between_pages(make_crawler, sleep_recorder):
    renderer = StubRenderer({SEED: page("/x/a", "/x/b")})
    crawler = make_crawler(SEED, renderer, wait=2.0, random_wait=False)

    await crawler.crawl()

    assert sleep_recorder.calls == [2.0, 2.0]


@pytest.mark.asyncio
async def test_random_wait_stays_within_bounds(make_crawler, sleep_recorder):
    renderer = StubRenderer({SEED: page(*[f"/x/{i}" for i in range(10)])})
    crawler = make_crawler(SEED, renderer, wait=2.0, random_wait=True, rng=random.Random(1))

    await crawler.crawl()

    assert len(sleep_recorder.calls) == 10
    assert all(1.0 <= delay <= 3.0 for delay in sleep_recorder.calls)


@pytest.mark.asyncio
async def test_resources_archived_once_and_rewritten_on_every_page(make_crawler, tmp_path):
    css = "https://a.com/x/style.css"
    logo = "https://cdn.com/logo.png"
    child = "https://a.com/x/sub/page.html"

    def responses():
        return [
            ResourceResponse(css, 200, {'content-type': 'text/css'}, b"body{}"),
            ResourceResponse(logo, 200, {'content-type': 'image/png'}, b"PNG"),
            ResourceResponse(SEED, 200, {'content-type': 'text/html'}, b"<html></html>"),
            ResourceResponse("https://a.com/missing.js", 404, {}, b""),
        ]

    renderer = StubRenderer(
        {
            SEED: page("/x/sub/page.html", body=f'<link href="{css}"><img src="{logo}">'),
            child: page(body=f'<link href="{css}">'),
        },
        resources={SEED: responses(), child: responses()[:1]},
    )
    crawler = make_crawler(SEED, renderer)

    result = await crawler.crawl()

    out = tmp_path / "out"
    assert result.resources_archived == 2
    assert sorted(p.name for p in (out / "resources").rglob("*") if p.is_file()) == sorted([
        resource_path_for(css, "text/css").split("/")[-1],
        resource_path_for(logo, "image/png").split("/")[-1],
    ])

    seed_html = (out / "a.com" / "x" / "index.html").read_text(encoding="utf-8")
    assert css not in seed_html and logo not in seed_html
    assert "../../" + resource_path_for(css, "text/css") in seed_html
    assert "../../" + resource_path_for(logo, "image/png") in seed_html

    child_html = (out / "a.com" / "x" / "sub" / "page.html").read_text(encoding="utf-8")
    assert "../../../" + resource_path_for(css, "text/css") in child_html

    sitemap = json.loads((out / "sitemap.json").read_text(encoding="utf-8"))
    assert sitemap['total_pages'] == 2
    assert set(sitemap['resources']) == {css, logo}


@pytest.mark.asyncio
async def test_archive_failure_does_not_abort_page(make_crawler, tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    (out / "resources").write_text("blocks the resources directory")

    renderer = StubRenderer(
        {SEED: page(body='<img src="https://a.com/x/i.png">')},
        resources={SEED: [ResourceResponse("https://a.com/x/i.png", 200, {'content-type': 'image/png'}, b"x")]},
    )
    crawler = make_crawler(SEED, renderer)

    result = await crawler.crawl()

    assert result.pages_saved == 1
    assert [e['type'] for e in result.errors] == ['archive_error']
    saved = (out / "a.com" / "x" / "index.html").read_text(encoding="utf-8")
    assert "https://a.com/x/i.png" in saved


def test_invalid_seed_url_rejected(make_crawler):
    with pytest.raises(ValueError):
        make_crawler("not a url", StubRenderer({}))
    with pytest.raises(ValueError):
        make_crawler("https://not a url/", StubRenderer({}))
