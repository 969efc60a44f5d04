import asyncio
import logging

from lunch_scraper.main import scrape_restaurants

from fakes import FakePage, FakeSession, fast_config, menu_page

BASE = "https://www.unica.fi/en/restaurants/"
OPEN = BASE + "university-campus/assarin-ullakko/"
CLOSED = BASE + "art-campus/sigyn/"
BROKEN = BASE + "others/fabrik-cafe/"
SAME_NAME = BASE + "kupittaa-campus/linus/"
MALFORMED = BASE + "kupittaa-campus/dental/"

MALFORMED_HTML = """
<html><body>
  <h1 data-epi-property-name="Title">Dental</h1>
  <div class="lunch-day">
    <div class="lunch-menu-block__menu-package"><h5>STATION 1</h5></div>
  </div>
</body></html>
"""


def test_failures_are_isolated_per_restaurant():
    config = fast_config()
    session = FakeSession({
        OPEN: menu_page(),
        CLOSED: FakePage(),
        BROKEN: FakePage(error=RuntimeError("connection reset")),
        MALFORMED: menu_page(html=MALFORMED_HTML),
        SAME_NAME: menu_page(),
    })
    urls = [CLOSED, BROKEN, OPEN, MALFORMED, SAME_NAME]

    restaurants = asyncio.run(scrape_restaurants(urls, config, session))

    assert session.visited == [config.site_root] + urls
    assert [restaurant.name for restaurant in restaurants] == ["Assarin Ullakko"]
    assert len(restaurants.restaurants[0].meals) == 3


def test_closed_restaurant_has_no_entry():
    session = FakeSession({CLOSED: FakePage()})

    restaurants = asyncio.run(scrape_restaurants([CLOSED], fast_config(), session))

    assert len(restaurants) == 0


def test_failure_is_logged_without_traceback_by_default(caplog):
    session = FakeSession({BROKEN: FakePage(error=RuntimeError("connection reset"))})

    with caplog.at_level(logging.ERROR, logger="lunch_scraper.main"):
        asyncio.run(scrape_restaurants([BROKEN], fast_config(), session))

    [record] = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert BROKEN in record.getMessage()
    assert "RuntimeError: connection reset" in record.getMessage()
    assert record.exc_info is None


def test_failure_is_logged_with_traceback_in_debug_mode(caplog):
    session = FakeSession({BROKEN: FakePage(error=RuntimeError("connection reset"))})

    with caplog.at_level(logging.ERROR, logger="lunch_scraper.main"):
        asyncio.run(scrape_restaurants([BROKEN], fast_config(debug_mode=True), session))

    [record] = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert BROKEN in record.getMessage()
    assert record.exc_info is not None
    assert record.exc_info[0] is RuntimeError
