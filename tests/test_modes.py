"""Tests for detection mode enums."""

from aspectscan.modes import MultiFormatMode, SamplingMode


class TestSamplingMode:
    """Tests for SamplingMode enum properties."""

    def test_values(self):
        """Test sampling mode values used in config and CLI."""
        assert [m.value for m in SamplingMode] == ["fast", "default", "accurate"]

    def test_from_string(self):
        """Test lookup from configuration strings."""
        assert SamplingMode("accurate") is SamplingMode.ACCURATE

    def test_display_name(self):
        """Test human-readable names."""
        assert SamplingMode.FAST.display_name == "Fast"
        assert SamplingMode.DEFAULT.display_name == "Default"


class TestMultiFormatMode:
    """Tests for MultiFormatMode enum properties."""

    def test_values(self):
        """Test multi-format mode values used in config and CLI."""
        assert [m.value for m in MultiFormatMode] == ["off", "higher", "wider"]

    def test_display_name(self):
        """Test human-readable names."""
        assert MultiFormatMode.OFF.display_name == "Disabled"
        assert MultiFormatMode.HIGHER.display_name == "Higher AR as primary"
