"""
Unit tests for the HTML element tree and the itinerary extraction.
No network, no app.
"""
from tripbook.viewer.extractor import extract_itinerary, take_diary_section
from tripbook.viewer.markup import parse


class TestMarkup:
    def test_round_trip_keeps_entities(self):
        src = '<p class="a b">Fish &amp; chips <br> &#8364;5<!-- note --></p>'
        assert parse(src).outer_html == '<p class="a b">Fish &amp; chips <br> &#8364;5<!-- note --></p>'

    def test_text_is_decoded(self):
        doc = parse("<p>Fish &amp; <b>chips</b></p>")
        assert doc.find(lambda el: el.tag == "p").text == "Fish & chips"

    def test_find_by_class_and_id(self):
        doc = parse('<div id="x"><span class="time big">9</span></div>')
        assert doc.get_by_id("x").tag == "div"
        assert doc.find_by_class("big").text == "9"
        assert doc.find_by_class("missing") is None

    def test_remove_detaches(self):
        doc = parse('<ul><li id="a">1</li><li id="b">2</li></ul>')
        doc.get_by_id("a").remove()
        assert doc.outer_html == '<ul><li id="b">2</li></ul>'

    def test_clone_is_independent(self):
        doc = parse('<li><span class="time">9</span>Walk</li>')
        li = doc.find(lambda el: el.tag == "li")
        twin = li.clone()
        twin.find_by_class("time").remove()
        assert twin.parent is None
        assert twin.inner_html == "Walk"
        assert li.inner_html == '<span class="time">9</span>Walk'

    def test_set_inner_html(self):
        doc = parse('<div id="list">old</div>')
        target = doc.get_by_id("list")
        target.set_inner_html("<p>new</p><p>two</p>")
        assert [c.tag for c in target.child_elements()] == ["p", "p"]
        assert doc.outer_html == '<div id="list"><p>new</p><p>two</p></div>'

    def test_attribute_escaping(self):
        doc = parse("<a>x</a>")
        a = doc.find(lambda el: el.tag == "a")
        a.set("title", 'say "hi"')
        a.set("hidden")
        assert a.outer_html == '<a title="say &quot;hi&quot;" hidden>x</a>'

    def test_optional_end_tags(self):
        doc = parse("<ul><li>a<li>b<ul><li>b1<li>b2</ul><li>c</ul><p>one<p>two")
        assert doc.outer_html == (
            "<ul><li>a</li><li>b<ul><li>b1</li><li>b2</li></ul></li><li>c</li></ul>"
            "<p>one</p><p>two</p>"
        )

    def test_table_cells_without_end_tags(self):
        doc = parse("<table><tr><td>1<td>2<tr><td>3</table>")
        assert doc.outer_html == "<table><tr><td>1</td><td>2</td></tr><tr><td>3</td></tr></table>"

    def test_stray_end_tag_is_dropped(self):
        assert parse("<p>a</span>b</p>").outer_html == "<p>ab</p>"


class TestExtractItinerary:
    def test_days_in_document_order(self, page):
        days = extract_itinerary(parse(page))
        assert [d.id for d in days] == [1, 2, 3]

    def test_fields(self, page):
        day1, day2, day3 = extract_itinerary(parse(page))
        assert day1.title == "Arrival in <em>Lisbon</em>"
        assert day1.subtitle == "Alfama &amp; Baixa"
        assert day1.highlight is None
        assert day2.subtitle == ""
        assert day2.highlight == "Book Pena Palace tickets"
        assert day3.schedule == ()

    def test_schedule_items(self, page):
        day1 = extract_itinerary(parse(page))[0]
        first, second, third = day1.schedule
        assert first.time == "09:00"
        assert first.content == "Land at <b>LIS</b>"
        assert first.transport == "Metro red line"
        assert second.transport is None
        assert third.time == ""
        assert third.content == "Sunset at the miradouro"

    def test_cards_are_removed(self, page):
        doc = parse(page)
        extract_itinerary(doc)
        assert doc.find_all_by_class("day-card") == []
        assert doc.get_by_id("tab-list") is not None

    def test_invalid_and_duplicate_cards_skipped(self):
        doc = parse(
            '<div class="day-card" data-day="x"><div class="day-title">Bad</div></div>'
            '<div class="day-card" data-day="0"><div class="day-title">Zero</div></div>'
            '<div class="day-card" data-day="4"><div class="day-title">Four</div></div>'
            '<div class="day-card" data-day="4"><div class="day-title">Again</div></div>'
            '<div class="day-card"><div class="day-title">None</div></div>'
        )
        days = extract_itinerary(doc)
        assert [(d.id, d.title) for d in days] == [(4, "Four")]
        assert doc.find_all_by_class("day-card") == []

    def test_rows_without_end_tags(self):
        doc = parse(
            '<div class="day-card" data-day="5"><div class="day-title">Évora</div>'
            '<ul class="schedule">'
            '<li><span class="time">09:00</span>Temple<div class="transport">Bus</div>'
            '<li>Chapel of <b>Bones</b>'
            '<li>Dinner'
            '</ul></div>'
        )
        (day,) = extract_itinerary(doc)
        assert [item.content for item in day.schedule] == ["Temple", "Chapel of <b>Bones</b>", "Dinner"]
        assert day.schedule[0].time == "09:00"
        assert day.schedule[0].transport == "Bus"
        assert day.schedule[1].transport is None

    def test_no_cards(self):
        assert extract_itinerary(parse("<p>empty</p>")) == []


class TestDiarySection:
    def test_take_detaches(self, page):
        doc = parse(page)
        section = take_diary_section(doc)
        assert section.get("id") == "diary"
        assert section.parent is None
        assert doc.get_by_id("diary") is None

    def test_missing_section(self):
        assert take_diary_section(parse("<p>no diary</p>")) is None
