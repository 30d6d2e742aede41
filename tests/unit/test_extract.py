"""Tests for ordered field-extraction strategies."""

import pytest

from servers.event_aggregator.sources.extract import (
    attr_of,
    collect_unique,
    first_non_empty,
    image_in,
    image_source,
    looks_like_date,
    looks_like_datetime,
    looks_like_location,
    matching_paragraph,
    own_text,
    parse_html,
    select_all,
    text_of,
)

CARD = """
<div class="card">
  <h3 class="title">  Bondi   Sunrise Yoga </h3>
  <a href="/e/bondi-yoga-1" aria-label="View Bondi Sunrise Yoga" data-event-id="1">Book</a>
  <time datetime="2026-04-04T06:00:00+10:00">Sat 4 Apr</time>
  <div class="body">
    <p>Sat, 4 Apr, 6:00 am</p>
    <p>Bondi Beach</p>
  </div>
  <div class="media"><img data-src="/yoga.jpg" /></div>
</div>
"""


@pytest.fixture
def card():
    return parse_html(CARD).select_one("div.card")


class TestFirstNonEmpty:
    """Tests for strategy evaluation order."""

    def test_first_match_wins(self, card):
        strategies = [text_of(".missing"), text_of("h3"), text_of("a")]
        assert first_non_empty(strategies, card) == "Bondi Sunrise Yoga"

    def test_later_strategies_not_evaluated(self, card):
        calls = []

        def tracked(node):
            calls.append("late")
            return "late"

        assert first_non_empty([text_of("h3"), tracked], card) == "Bondi Sunrise Yoga"
        assert calls == []

    def test_strategy_errors_are_skipped(self, card):
        def broken(node):
            raise AttributeError("no such thing")

        assert first_non_empty([broken, text_of("a")], card) == "Book"

    def test_all_empty(self, card):
        assert first_non_empty([text_of(".missing"), lambda node: "   "], card) == ""


class TestStrategyBuilders:
    """Tests for the strategy builders."""

    def test_attr_of_first_non_empty_attr(self, card):
        assert attr_of("time", "data-datetime", "datetime")(card) == "2026-04-04T06:00:00+10:00"

    def test_attr_of_self(self, card):
        link = card.select_one("a")
        assert attr_of(None, "aria-label")(link) == "View Bondi Sunrise Yoga"

    def test_attr_of_missing(self, card):
        assert attr_of(".missing", "href")(card) is None
        assert attr_of("a", "data-nothing")(card) is None

    def test_attr_of_multi_valued(self, card):
        assert attr_of(None, "class")(card) == "card"

    def test_own_text(self, card):
        assert own_text(card.select_one("a")) == "Book"

    def test_image_in_container(self, card):
        assert image_in(".media")(card) == "/yoga.jpg"

    def test_image_in_img_itself(self, card):
        assert image_in("img")(card) == "/yoga.jpg"

    def test_image_source_none(self):
        assert image_source(None) is None

    def test_matching_paragraph(self, card):
        def body(node):
            return node.select_one(".body")

        assert matching_paragraph(body, looks_like_location)(card) == "Bondi Beach"
        assert matching_paragraph(body, looks_like_date)(card) == "Sat, 4 Apr, 6:00 am"

    def test_matching_paragraph_no_scope(self, card):
        assert matching_paragraph(lambda node: None, looks_like_date)(card) is None


class TestClassifiers:
    """Tests for date/location text classifiers."""

    @pytest.mark.parametrize("text", ["Fri, 3 Apr", "8:00 pm", "Tomorrow at 19:30"])
    def test_looks_like_date(self, text):
        assert looks_like_date(text)

    def test_datetime_needs_calendar_word_and_clock(self):
        assert looks_like_datetime("Fri, 3 Apr, 8:00 pm")
        assert not looks_like_datetime("Fri, 3 Apr")
        assert not looks_like_datetime("8:00 pm")

    @pytest.mark.parametrize("text", ["The Basement, Circular Quay", "Hyde Park"])
    def test_location(self, text):
        assert looks_like_location(text)

    @pytest.mark.parametrize("text", ["Fri, 3 Apr", "From $35.00", "Free", "19:30", "x"])
    def test_not_location(self, text):
        assert not looks_like_location(text)


class TestDiscovery:
    """Tests for card collection helpers."""

    def test_collect_unique_preserves_order(self):
        soup = parse_html("<p id='a'></p><p id='b'></p><p id='c'></p>")
        a, b, c = soup.find_all("p")
        assert collect_unique([[a, b], [b, c], [a]]) == [a, b, c]

    def test_select_all_keeps_one_group_per_selector(self):
        soup = parse_html("<article><a href='/e/1'></a></article>")
        groups = select_all(soup, ["article", "div", "a"])
        assert [len(group) for group in groups] == [1, 0, 1]
