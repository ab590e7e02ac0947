import pytest

from insider_monitor.core.categories import categorize_market


@pytest.mark.parametrize(
    "question,tags,expected",
    [
        ("Will Bitcoin reach $100k?", [], "Crypto"),
        ("Who wins the 2028 election?", [], "Politics"),
        ("Super Bowl 2026 Winner", [], "Sports"),
        ("Will OpenAI ship GPT-5?", [], "Technology"),
        ("Will the Fed cut in March?", [], "Finance"),
        ("Oscar Best Picture 2026", [], "Entertainment"),
        ("Will it snow in Paris?", [], "Other"),
        ("Will it snow in Paris?", ["Sports"], "Sports"),
        ("", None, "Other"),
    ],
)
def test_categorize_market(question, tags, expected):
    assert categorize_market(question, tags) == expected


def test_first_rule_wins():
    assert categorize_market("Bitcoin price after the election?") == "Crypto"
