"""Text heuristics: bot accounts, @mentions and questions."""

import re
from dataclasses import dataclass, field

# Checked in this order; an explicit "Bot" account type wins regardless.
BOT_SUFFIXES = ("-bot", "[bot]", "-robot")

# GitHub logins: alphanumerics and single hyphens, at most 39 characters.
MENTION_PATTERN = re.compile(
    r"(?:^|[^a-zA-Z0-9])@([a-zA-Z0-9][a-zA-Z0-9\-]{0,38}[a-zA-Z0-9]|[a-zA-Z0-9])"
)

DEFAULT_QUESTION_PHRASES = (
    "how can",
    "how do",
    "how would",
    "how should",
    "should i",
    "should we",
    "can i",
    "can we",
    "can you",
    "could you",
    "would you",
    "what do you think",
    "what's the best",
    "what is the best",
    "any suggestions",
    "any ideas",
    "any thoughts",
    "anyone know",
    "does anyone",
    "is it possible",
    "is there a way",
    "wondering if",
    "thoughts on",
    "advice on",
    "help with",
    "need help",
)

MIN_QUESTION_LENGTH = 3


def is_bot(login: str, account_type: str | None = None) -> bool:
    """Check whether an account is a bot.

    Args:
        login: Account login
        account_type: GitHub's ``type`` field for the account, if known
    """
    if account_type == "Bot":
        return True
    if not login:
        return False
    return any(login.endswith(suffix) for suffix in BOT_SUFFIXES)


def extract_mentions(text: str) -> tuple[str, ...]:
    """Extract ``@login`` mentions in order of first appearance."""
    if not text:
        return ()
    seen: dict[str, None] = {}
    for match in MENTION_PATTERN.finditer(text):
        seen.setdefault(match.group(1), None)
    return tuple(seen)


@dataclass(frozen=True)
class QuestionPatterns:
    """Compiled question phrases.

    Build one at startup and share it; the phrases are compiled once here and
    never change afterwards.
    """

    phrases: tuple[str, ...] = DEFAULT_QUESTION_PHRASES
    _compiled: tuple[re.Pattern[str], ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        compiled = tuple(
            re.compile(rf"\b{re.escape(phrase)}\b", re.IGNORECASE)
            for phrase in self.phrases
        )
        object.__setattr__(self, "_compiled", compiled)

    def is_question(self, text: str) -> bool:
        """Check whether text asks a question or requests advice."""
        if not text:
            return False
        if "?" in text:
            return True
        if len(text) < MIN_QUESTION_LENGTH:
            return False
        return any(pattern.search(text) for pattern in self._compiled)
