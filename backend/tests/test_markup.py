import pytest

from app.core.markup import MarkupStreamFilter, clean_content, strip_markup

SAMPLES = [
    "plain answer with no tags",
    "a < b and c > d",
    '<|DSML|invoke name="web_search">query</|DSML|invoke>',
    "<｜tool▁calls▁begin｜><｜tool▁call▁begin｜>web_search<｜tool▁sep｜>",
    "<|DS<|DSML|x>ML|y>",
    "Answer <|DSML|parameter name=\"query\" string=\"true\">roof</|DSML|parameter> end",
    "< | dsml | function_calls >",
]


@pytest.mark.parametrize("text", SAMPLES)
def test_strip_is_idempotent(text):
    once = strip_markup(text)
    assert strip_markup(once) == once


def test_nested_tags_are_fully_removed():
    assert strip_markup("<|DS<|DSML|x>ML|y>") == ""


def test_plain_text_untouched():
    assert strip_markup("  a < b and c > d  ") == "  a < b and c > d  "


def test_full_width_bars():
    assert strip_markup("x<｜end▁of▁sentence｜>y") == "xy"


def test_clean_content_trims():
    assert clean_content("  <|DSML|function_calls>\nHello\n") == "Hello"
    assert clean_content(None) == ""


class TestStreamFilter:
    def _run(self, *fragments: str) -> list[str]:
        markup = MarkupStreamFilter()
        out = [markup.feed(f) for f in fragments]
        out.append(markup.flush())
        return out

    def test_tag_split_across_fragments(self):
        out = self._run("Answer <|DS", 'ML|invoke name="web_search">', " done")
        assert "".join(out) == "Answer  done"
        assert out[0] == "Answer "

    def test_lone_angle_bracket_released(self):
        out = self._run("I <", "3 you")
        assert out == ["I ", "<3 you", ""]

    def test_unfinished_tag_at_end(self):
        assert "".join(self._run("done <|DSML|inv")) == "done <|DSML|inv"

    def test_unfinished_marker_is_not_held_forever(self):
        long_tail = "<|" + "x" * 100
        assert self._run(long_tail)[0] == long_tail
