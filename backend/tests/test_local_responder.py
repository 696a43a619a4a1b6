import pytest

from app.core.local_responder import HELP_MENU, OVERVIEW, ROADMAP, ROI_SUMMARY, generate_local_response


def test_quick_wins():
    text = generate_local_response("What are our quick wins?")
    assert text.startswith("## 🎯 Quick Wins for Guardian Roofing")
    for ref in ("Pain Point #1:", "Pain Point #4:", "Pain Point #7:"):
        assert ref in text
    assert "Pain Point #9:" not in text


def test_critical():
    text = generate_local_response("What is URGENT right now?")
    assert text.startswith("## 🚨 Critical Priority Items (P0)")


@pytest.mark.parametrize(
    "message, expected",
    [
        ("What's the ROI here?", ROI_SUMMARY),
        ("Give me a timeline", ROADMAP),
        ("Give me an overview", OVERVIEW),
        ("hello", HELP_MENU),
    ],
)
def test_canned_answers(message, expected):
    assert generate_local_response(message) == expected


def test_keyword_order():
    # quick wins outrank priority when both appear
    assert generate_local_response("critical quick win").startswith("## 🎯 Quick Wins")


@pytest.mark.parametrize("message", ["Tell me about pain point 5", "What about #5?", "scheduling & capacity"])
def test_pain_point_detail(message):
    assert generate_local_response(message).startswith("## Pain Point #5: Scheduling & Capacity")


@pytest.mark.parametrize("message", ["tell me about #10", "what is pain point 10?", "Pain Point #10 details"])
def test_two_digit_id_is_not_read_as_one(message):
    assert generate_local_response(message).startswith("## Pain Point #10: Training & SOPs")
