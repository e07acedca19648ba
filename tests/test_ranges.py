"""Tests for clip range resolution."""

import pytest

from gifclip.errors import RangeError, RangeErrorKind, ValidationError
from gifclip.ranges import (
    CUE_PAIR_PADDING,
    SINGLE_CUE_PADDING,
    ClipRange,
    CuePairRange,
    ExplicitRange,
    SingleCueRange,
    resolve_padding,
    resolve_range,
)
from gifclip.subtitles.models import Cue


class TestResolvePadding:
    """Tests for padding precedence."""

    def test_default(self):
        """Test the mode default applies when nothing is given."""
        assert resolve_padding(None, None, None, SINGLE_CUE_PADDING) == (0.0, 2.0)
        assert resolve_padding(None, None, None, CUE_PAIR_PADDING) == (0.0, 0.5)

    def test_symmetric_beats_default(self):
        """Test --pad sets both sides."""
        assert resolve_padding(1.0, None, None, SINGLE_CUE_PADDING) == (1.0, 1.0)

    def test_asymmetric_beats_symmetric(self):
        """Test per-side padding overrides --pad on that side only."""
        assert resolve_padding(1.0, 0.25, None, SINGLE_CUE_PADDING) == (0.25, 1.0)
        assert resolve_padding(1.0, None, 3.0, SINGLE_CUE_PADDING) == (1.0, 3.0)

    def test_asymmetric_beats_default(self):
        """Test per-side padding without --pad keeps the other default."""
        assert resolve_padding(None, 0.5, None, SINGLE_CUE_PADDING) == (0.5, 2.0)

    def test_zero_is_honoured(self):
        """Test an explicit zero is not treated as missing."""
        assert resolve_padding(None, None, 0.0, SINGLE_CUE_PADDING) == (0.0, 0.0)

    def test_negative_rejected(self):
        """Test negative padding is a validation error."""
        with pytest.raises(ValidationError, match="pad_after"):
            resolve_padding(None, None, -1.0, SINGLE_CUE_PADDING)


class TestExplicitRange:
    """Tests for timestamp ranges."""

    def test_within_video(self):
        """Test 1:30 to 1:45 on a 300s video."""
        assert resolve_range(ExplicitRange(90.0, 105.0), 300.0) == ClipRange(90.0, 105.0)

    def test_unknown_duration(self):
        """Test no clamping without a duration."""
        assert resolve_range(ExplicitRange(90.0, 105.0)) == ClipRange(90.0, 105.0)

    def test_end_clamped(self):
        """Test the end is clamped to the video length."""
        assert resolve_range(ExplicitRange(290.0, 310.0), 300.0) == ClipRange(290.0, 300.0)

    @pytest.mark.parametrize("start,end", [(10.0, 10.0), (20.0, 10.0)])
    def test_empty_or_negative(self, start, end):
        """Test end <= start."""
        with pytest.raises(RangeError) as exc_info:
            resolve_range(ExplicitRange(start, end), 300.0)
        assert exc_info.value.kind == RangeErrorKind.EMPTY_OR_NEGATIVE

    @pytest.mark.parametrize("start", [300.0, 301.0])
    def test_start_past_end_of_video(self, start):
        """Test a start at or past the end of the video."""
        with pytest.raises(RangeError) as exc_info:
            resolve_range(ExplicitRange(start, start + 5), 300.0)
        assert exc_info.value.kind == RangeErrorKind.OUT_OF_BOUNDS

    def test_empty_once_rounded_to_milliseconds(self):
        """Test a clamped range that only survives below millisecond precision."""
        with pytest.raises(RangeError) as exc_info:
            resolve_range(ExplicitRange(10.0, 10.5), 10.0004)
        assert exc_info.value.kind == RangeErrorKind.OUT_OF_BOUNDS

    def test_sub_millisecond_duration_rounded(self):
        """Test the clamped end is rounded like the start."""
        clip_range = resolve_range(ExplicitRange(9.0, 10.5), 10.0004)
        assert clip_range == ClipRange(9.0, 10.0)
        assert clip_range.end > clip_range.start


class TestDialogueRanges:
    """Tests for cue-based ranges."""

    def test_single_cue_default_padding(self):
        """Test one cue gets the trailing default padding."""
        cue = Cue(start=12.0, end=14.5, text="Frankly my dear")
        assert resolve_range(SingleCueRange(cue)) == ClipRange(12.0, 16.5)

    def test_cue_pair_default_padding(self):
        """Test a cue pair spans start of first to end of second plus padding."""
        first = Cue(start=5.0, end=7.0, text="What is the Matrix")
        second = Cue(start=40.0, end=43.0, text="No one can be told")
        assert resolve_range(CuePairRange(first, second)) == ClipRange(5.0, 43.5)

    def test_start_padding_clamped_to_zero(self):
        """Test leading padding never goes below zero."""
        cue = Cue(start=1.0, end=2.0, text="Early")
        assert resolve_range(SingleCueRange(cue, pad=3.0)) == ClipRange(0.0, 5.0)

    def test_padding_clamped_to_duration(self):
        """Test trailing padding is cut at the end of the video."""
        cue = Cue(start=58.0, end=59.0, text="Last line")
        assert resolve_range(SingleCueRange(cue), 60.0) == ClipRange(58.0, 60.0)

    def test_precedence_through_modes(self):
        """Test per-side padding flows through a cue pair."""
        first = Cue(start=5.0, end=7.0, text="a")
        second = Cue(start=10.0, end=11.0, text="b")
        mode = CuePairRange(first, second, pad=1.0, pad_after=0.0)
        assert resolve_range(mode) == ClipRange(4.0, 11.0)

    def test_zero_length_cue_with_zero_padding(self):
        """Test an instantaneous cue without padding is empty."""
        cue = Cue(start=5.0, end=5.0, text="blip")
        with pytest.raises(RangeError) as exc_info:
            resolve_range(SingleCueRange(cue, pad=0.0))
        assert exc_info.value.kind == RangeErrorKind.OUT_OF_BOUNDS

    def test_duration_property(self):
        """Test clip duration."""
        assert ClipRange(12.0, 16.5).duration == 4.5
