"""Tests for answer grading."""

import pytest

from studyreview.config.personas import get_default_persona
from studyreview.core.grader import GradingError, GradingResult, _parse_grading_payload, grade_answer
from studyreview.llm.client import LLMConnectionError, LLMResponseError


class TestParseGradingPayload:
    """Tests for interpreting the model's JSON."""

    def test_valid_payload(self):
        result = _parse_grading_payload({"score": 85, "feedback": "好", "isCorrect": True}, 80)
        assert result == GradingResult(score=85, feedback="好", is_correct=True)

    def test_score_clamped(self):
        assert _parse_grading_payload({"score": 130}, 80).score == 100
        assert _parse_grading_payload({"score": -5}, 80).score == 0

    def test_float_and_string_scores_rounded(self):
        assert _parse_grading_payload({"score": 79.6}, 80).score == 80
        assert _parse_grading_payload({"score": "66"}, 80).score == 66

    def test_missing_is_correct_uses_pass_score(self):
        assert _parse_grading_payload({"score": 80}, 80).is_correct is True
        assert _parse_grading_payload({"score": 79}, 80).is_correct is False

    def test_explicit_is_correct_kept(self):
        """The model's verdict is kept even if it disagrees with the score."""
        assert _parse_grading_payload({"score": 50, "isCorrect": True}, 80).is_correct is True

    def test_missing_score_raises(self):
        with pytest.raises(GradingError):
            _parse_grading_payload({"feedback": "?"}, 80)

    def test_bool_score_raises(self):
        with pytest.raises(GradingError):
            _parse_grading_payload({"score": True}, 80)

    def test_non_numeric_score_raises(self):
        with pytest.raises(GradingError):
            _parse_grading_payload({"score": "很好"}, 80)


class TestGradingResult:
    def test_to_dict_uses_stored_keys(self):
        data = GradingResult(score=90, feedback="x", is_correct=True).to_dict()
        assert data == {"score": 90, "feedback": "x", "isCorrect": True}

    def test_from_dict_round_trip(self):
        result = GradingResult(score=40, feedback="再看看", is_correct=False)
        assert GradingResult.from_dict(result.to_dict()) == result


class TestGradeAnswer:
    """Tests for grade_answer."""

    def test_success(self, mock_llm_client):
        result = grade_answer("问题", "我的答案", "参考答案", client=mock_llm_client)

        assert result.score == 90
        assert result.is_correct is True
        kwargs = mock_llm_client.simple_json.call_args.kwargs
        assert kwargs["system_prompt"] == get_default_persona().system_prompt
        assert "我的答案" in kwargs["user_message"]
        assert "参考答案" in kwargs["user_message"]

    def test_missing_key_skips_call(self, keyless_client):
        result = grade_answer("问题", "答案", "参考", client=keyless_client)

        assert result.score == 0
        assert result.is_correct is False
        assert result.feedback == get_default_persona().replies.missing_key_grading
        keyless_client.simple_json.assert_not_called()

    def test_blank_answer_skips_call(self, mock_llm_client):
        result = grade_answer("问题", "   ", "参考", client=mock_llm_client)

        assert result.score == 0
        assert result.feedback == get_default_persona().replies.empty_answer
        mock_llm_client.simple_json.assert_not_called()

    def test_missing_key_checked_before_blank(self, keyless_client):
        result = grade_answer("问题", "", "参考", client=keyless_client)
        assert result.feedback == get_default_persona().replies.missing_key_grading

    @pytest.mark.parametrize("error", [LLMConnectionError("down"), LLMResponseError("bad json")])
    def test_llm_failure_apologizes(self, mock_llm_client, error):
        mock_llm_client.simple_json.side_effect = error

        result = grade_answer("问题", "答案", "参考", client=mock_llm_client)

        assert result == GradingResult(
            score=0, feedback=get_default_persona().replies.grading_failed, is_correct=False
        )

    def test_unusable_payload_apologizes(self, mock_llm_client):
        mock_llm_client.simple_json.return_value = {"feedback": "没有分数"}

        result = grade_answer("问题", "答案", "参考", client=mock_llm_client)

        assert result.feedback == get_default_persona().replies.grading_failed
