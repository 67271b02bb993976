# tests/test_bullets.py

from plantext.engine.bullets import coerce_text, list_to_text, text_to_list


class TestListToText:
    def test_items_become_bullet_lines(self):
        assert list_to_text(["Item 1", "Item 2"]) == "- Item 1\n- Item 2"

    def test_empty_input(self):
        assert list_to_text([]) == ""
        assert list_to_text(None) == ""

    def test_empty_items_are_skipped(self):
        assert list_to_text(["a", "", "b"]) == "- a\n- b"


class TestTextToList:
    def test_bullet_lines_become_items(self):
        assert text_to_list("- Item 1\n- Item 2") == ["Item 1", "Item 2"]

    def test_markers_are_optional_and_blanks_dropped(self):
        assert text_to_list("- a\n\nb\n  -   c  \n") == ["a", "b", "c"]

    def test_empty_text(self):
        assert text_to_list("") == []
        assert text_to_list(None) == []

    def test_round_trip_of_plain_items(self):
        items = ["Write tests", "Ship it", "a - b"]
        assert text_to_list(list_to_text(items)) == items

    def test_paragraphs_do_not_round_trip(self):
        text = "Intro paragraph\n\n- item"
        assert list_to_text(text_to_list(text)) != text


class TestCoerceText:
    def test_list_is_folded(self):
        assert coerce_text(["a", "b"]) == "- a\n- b"

    def test_string_passes_through(self):
        assert coerce_text("free text") == "free text"

    def test_none_is_empty(self):
        assert coerce_text(None) == ""
