"""Answer grading module.

Responsibilities:
- Send a student's free-text answer and the reference answer to the LLM
- Return a 0-100 score, in-persona feedback and a correctness verdict
- Never raise: a missing API key, a blank answer and a failed request
  all become canned persona replies

Output structure (JSON):
- {"score": int, "feedback": str, "isCorrect": bool}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from studyreview.config.app_config import load_app_config
from studyreview.config.personas import Persona, get_default_persona
from studyreview.llm.client import LLMClient, LLMError

logger = structlog.get_logger(__name__)

# =============================================================================
# PROMPTS
# =============================================================================

USER_PROMPT_GRADE = """任务: 作为同学“{tutor_name}”，批改另一位同学的历史简答题。

题目: {question}
标准答案: {correct_answer}
同学的回答: {user_answer}

批改要求:
1. 仔细对比回答与标准答案的关键词。
2. 打分范围 0 到 100 分。
3. 反馈评语 (feedback):
   - 先严谨地指出错误与扣分点，再表扬！
   - 语气要像同学之间互相批改一样亲切。
   - 如果有遗漏，用商量的口吻指出来（“是不是漏了...？”）。
   - 展现你的耐心和善良。

输出 JSON 格式:
{{ "score": number, "feedback": "string", "isCorrect": boolean }}
(isCorrect 为 true 的条件是分数 >= {pass_score})"""


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class GradingResult:
    """Verdict for one graded answer."""

    score: int
    feedback: str
    is_correct: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": self.score,
            "feedback": self.feedback,
            "isCorrect": self.is_correct,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GradingResult:
        """Build from the serialized form."""
        return cls(
            score=int(data.get("score", 0)),
            feedback=str(data.get("feedback", "")),
            is_correct=bool(data.get("isCorrect", False)),
        )


class GradingError(Exception):
    """The model's grading payload could not be interpreted."""

    pass


# =============================================================================
# HELPERS
# =============================================================================


def _parse_grading_payload(payload: dict[str, Any], pass_score: int) -> GradingResult:
    """Turn the model's JSON into a GradingResult.

    Score is clamped to 0..100. When the model omits isCorrect it is
    derived from the pass score.

    Raises:
        GradingError: If score is missing or not a number
    """
    raw_score = payload.get("score")
    if isinstance(raw_score, bool) or raw_score is None:
        raise GradingError(f"Missing score in grading payload: {payload!r}")
    try:
        score = round(float(raw_score))
    except (TypeError, ValueError) as e:
        raise GradingError(f"Invalid score in grading payload: {raw_score!r}") from e

    score = max(0, min(100, score))

    feedback = payload.get("feedback")
    feedback = feedback if isinstance(feedback, str) else ""

    is_correct = payload.get("isCorrect")
    if not isinstance(is_correct, bool):
        is_correct = score >= pass_score

    return GradingResult(score=score, feedback=feedback, is_correct=is_correct)


# =============================================================================
# MAIN FUNCTION
# =============================================================================


def grade_answer(
    question: str,
    user_answer: str,
    correct_answer: str,
    client: LLMClient | None = None,
    persona: Persona | None = None,
) -> GradingResult:
    """Grade a student's answer against the reference answer.

    Args:
        question: Question text
        user_answer: The student's answer (already combined if multi-part)
        correct_answer: Reference answer
        client: Optional pre-configured LLM client (for testing)
        persona: Tutor persona (default persona if not provided)

    Returns:
        GradingResult; canned persona feedback with score 0 on any failure
    """
    if persona is None:
        persona = get_default_persona()
    if client is None:
        client = LLMClient()

    review_config = load_app_config().review

    if not client.has_credentials:
        logger.warning("grading_skipped_no_api_key")
        return GradingResult(score=0, feedback=persona.replies.missing_key_grading, is_correct=False)

    if not user_answer.strip():
        return GradingResult(score=0, feedback=persona.replies.empty_answer, is_correct=False)

    user_prompt = USER_PROMPT_GRADE.format(
        tutor_name=persona.name,
        question=question,
        correct_answer=correct_answer,
        user_answer=user_answer,
        pass_score=review_config.pass_score,
    )

    try:
        payload = client.simple_json(
            system_prompt=persona.system_prompt,
            user_message=user_prompt,
            temperature=review_config.grading_temperature,
        )
        result = _parse_grading_payload(payload, review_config.pass_score)
    except (LLMError, GradingError) as e:
        logger.error("grading_failed", error=str(e))
        return GradingResult(score=0, feedback=persona.replies.grading_failed, is_correct=False)

    logger.info("answer_graded", score=result.score, is_correct=result.is_correct)
    return result
