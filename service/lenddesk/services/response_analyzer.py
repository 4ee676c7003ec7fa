"""
Response analysis for advisor replies.

Keyword rules that turn a reply into suggested actions, next steps and a
confidence score. Low precision; the interface exists so a structured-output
analyzer can replace it.
"""

import re
from typing import Protocol

from lenddesk.agents.schemas import SuggestedAction

# (keywords, action type, description). Checked against reply + user text.
ACTION_RULES = [
    (("schedule", "call", "appointment"), "schedule_call", "Schedule consultation call with loan officer"),
    (("application", "apply", "qualify"), "create_task", "Create loan application task"),
    (("email", "send", "information"), "send_email", "Send loan product information via email"),
    (("complex", "specialist", "escalate"), "escalate", "Transfer to senior loan officer"),
]

LOAN_KEYWORDS = ["loan", "rate", "dscr", "flip", "bridge", "commercial", "financing", "mortgage"]
HEDGING_PHRASES = ["not sure", "maybe", "i think", "might be", "i don't know"]

DEFAULT_NEXT_STEPS = [
    "Continue gathering borrower requirements",
    "Provide additional loan product information",
]
MAX_NEXT_STEPS = 3

BASE_CONFIDENCE = 0.7
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95

# "1. Send the rent roll", "2) Book a call", "- Upload bank statements", "• ..."
STEP_LINE_RE = re.compile(r'^\s*(?:\d+[.)]|[-*•])\s+(.+?)\s*$')


class ResponseAnalyzer(Protocol):
    def extract_suggested_actions(self, reply: str, user_text: str) -> list[SuggestedAction]:
        ...

    def extract_next_steps(self, reply: str) -> list[str]:
        ...

    def calculate_confidence(self, reply: str, user_text: str) -> float:
        ...


class KeywordResponseAnalyzer:

    def extract_suggested_actions(self, reply: str, user_text: str) -> list[SuggestedAction]:
        text = f"{reply.lower()} {user_text.lower()}"

        actions = []
        for keywords, action_type, description in ACTION_RULES:
            if any(keyword in text for keyword in keywords):
                actions.append(SuggestedAction(type=action_type, description=description))
        return actions

    def extract_next_steps(self, reply: str) -> list[str]:
        steps = []
        for line in reply.splitlines():
            match = STEP_LINE_RE.match(line)
            if match:
                # Markdown bold inside list items
                steps.append(match.group(1).replace("**", ""))

        if not steps:
            return list(DEFAULT_NEXT_STEPS)
        return steps[:MAX_NEXT_STEPS]

    def calculate_confidence(self, reply: str, user_text: str) -> float:
        confidence = BASE_CONFIDENCE

        user_lower = user_text.lower()
        confidence += 0.05 * sum(1 for keyword in LOAN_KEYWORDS if keyword in user_lower)

        reply_lower = reply.lower()
        confidence -= 0.1 * sum(1 for phrase in HEDGING_PHRASES if phrase in reply_lower)

        if len(reply) > 200:
            confidence += 0.1
        if len(reply) < 50:
            confidence -= 0.1

        return round(min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, confidence)), 2)
