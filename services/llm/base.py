import logging
from abc import ABC, abstractmethod
from typing import List

from models.interview import Message, AnalysisResult, FeedbackData, SummaryData
from .parsing import parse_or_fallback
from .prompts import (
    OPENING_INSTRUCTION, DEFAULT_OPENING_QUESTION, analysis_prompt, summary_prompt
)

logger = logging.getLogger(__name__)

FALLBACK_ANALYSIS = AnalysisResult(
    feedback=FeedbackData(
        rating=5,
        explanation="Could not parse AI feedback.",
        sample_answer="N/A",
        common_mistakes="N/A",
    ),
    next_question="Could you elaborate on that?",
)

FALLBACK_SUMMARY = SummaryData(
    overall_score=70,
    strengths=["Participation"],
    weaknesses=["Technical depth"],
    revision_topics=["Core concepts"],
    project_improvements=["Review basics"],
)


class LLMProvider(ABC):
    """
    Uniform interface over chat-completion backends.

    Subclasses implement `_complete`; prompt construction and JSON parsing
    with fallback live here so every backend behaves the same way.
    """

    name = "base"

    @abstractmethod
    def _complete(self, prompt: str, json_mode: bool = False) -> str:
        """Send one prompt and return the raw reply text."""

    def generate_opening_question(self, system_prompt: str) -> str:
        text = self._complete(f"{system_prompt}\n\n{OPENING_INSTRUCTION}")
        question = (text or "").strip()
        if not question:
            logger.warning(f"{self.name} returned an empty opening question")
            return DEFAULT_OPENING_QUESTION
        return question

    def analyze_answer(self, history: List[Message], answer: str, context: str) -> AnalysisResult:
        text = self._complete(analysis_prompt(history, answer, context), json_mode=True)
        return parse_or_fallback(text, AnalysisResult, FALLBACK_ANALYSIS)

    def generate_summary(self, history: List[Message]) -> SummaryData:
        text = self._complete(summary_prompt(history), json_mode=True)
        return parse_or_fallback(text, SummaryData, FALLBACK_SUMMARY)
