"""Tests for text utilities."""

from studyreview.utils.text_utils import strip_speaker_prefix, strip_think, truncate


class TestStripThink:
    def test_removes_think_blocks(self):
        assert strip_think("<think>hmm\nok</think>答案") == "答案"

    def test_plain_text_untouched(self):
        assert strip_think("  答案  ") == "答案"

    def test_mixed_case_analysis_block(self):
        assert strip_think("<Analysis>想一想</Analysis> 好") == "好"


class TestStripSpeakerPrefix:
    def test_removes_leading_label(self):
        assert strip_speaker_prefix("纲哥：这题简单。", "纲哥") == "这题简单。"

    def test_half_width_colon(self):
        assert strip_speaker_prefix("纲哥: 好", "纲哥") == "好"

    def test_label_elsewhere_kept(self):
        assert strip_speaker_prefix("问纲哥：好", "纲哥") == "问纲哥：好"


class TestTruncate:
    def test_short_text(self):
        assert truncate("abc", 10) == "abc"

    def test_long_text(self):
        result = truncate("a" * 20, 10)
        assert len(result) == 10
        assert result.endswith("…")
