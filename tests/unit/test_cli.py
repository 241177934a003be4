"""Tests for twmt_search.cli.main helpers."""
from __future__ import annotations

from twmt_search.cli.main import SearchCLI, marked_text


class TestMarkedText:
    def test_marks_become_styled_spans(self):
        text = marked_text("Iron <mark>Spear</mark>men")
        assert text.plain == "Iron Spearmen"
        styled = [text.plain[span.start:span.end] for span in text.spans]
        assert styled == ["Spear"]

    def test_entities_unescaped(self):
        assert marked_text("a &lt; <mark>b &amp; c</mark>").plain == "a < b & c"

    def test_plain_text(self):
        text = marked_text("nothing here")
        assert text.plain == "nothing here"
        assert text.spans == []


class TestSearchCLI:
    def test_search_and_paging(self, service, capsys):
        cli = SearchCLI(service)
        cli._search("iron")
        assert cli.page.total_count == 4
        cli._turn_page(1)
        assert cli.page.current_page == 1
        assert "No more pages" in capsys.readouterr().out

    def test_save_and_run(self, service):
        cli = SearchCLI(service)
        cli._search("shield")
        cli._save("Shields")
        assert [s.name for s in service.get_saved_searches().value] == ["Shields"]
        cli._run_saved("1")
        assert cli.page.query.text == "shield"
        assert service.get_saved_searches().value[0].usage_count == 1

    def test_toggle(self, service):
        cli = SearchCLI(service)
        cli._toggle("use_regex")
        assert cli.query.options.use_regex
        assert "regex" in cli._mode_label()
