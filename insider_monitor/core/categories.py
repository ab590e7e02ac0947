"""Coarse keyword categorization of market questions.

This is substring matching, not classification: the first rule that hits wins
and short keywords such as "ai" or "rate" match inside longer words.
"""

_RULES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    ("Crypto", ("crypto",), ("bitcoin", "ethereum", "crypto")),
    ("Politics", ("politic",), ("election", "president", "congress")),
    ("Sports", ("sport",), ("super bowl", "nba", "nfl", "championship")),
    ("Technology", ("tech",), ("ai", "gpt", "openai", "apple")),
    ("Finance", (), ("fed", "rate", "stock", "market")),
    ("Entertainment", (), ("oscar", "movie", "grammy", "emmy")),
)

DEFAULT_CATEGORY = "Other"


def categorize_market(question: str | None, tags: list[str] | None = None) -> str:
    text = (question or "").lower()
    labels = [tag.lower() for tag in tags or []]
    for category, tag_keywords, question_keywords in _RULES:
        if any(keyword in label for label in labels for keyword in tag_keywords):
            return category
        if any(keyword in text for keyword in question_keywords):
            return category
    return DEFAULT_CATEGORY
