"""Tests for text normalization and unit parsing."""

import pytest
from label_verifier.services.normalization import normalize_text, normalize_whitespace, is_blank
from label_verifier.services.units import Volume, extract_percentage, extract_volume


class TestNormalizeText:
    """Test case/punctuation/whitespace normalization."""

    def test_case_and_punctuation(self):
        """Test lowercasing and removal of periods and commas."""
        assert normalize_text("Old Tom, Distillery.") == "old tom distillery"

    def test_hyphens_removed(self):
        """Test hyphens are dropped rather than replaced with spaces."""
        assert normalize_text("Straight-Bourbon") == "straightbourbon"

    def test_whitespace_collapsed(self):
        """Test internal runs collapse and ends are trimmed."""
        assert normalize_text("  Kentucky   Straight\tBourbon\n") == "kentucky straight bourbon"

    def test_other_punctuation_kept(self):
        """Test apostrophes and ampersands are not stripped."""
        assert normalize_text("Stone's Throw & Co.") == "stone's throw & co"

    def test_empty_string(self):
        """Test empty input maps to empty output."""
        assert normalize_text("") == ""

    @pytest.mark.parametrize("text", [
        "Old Tom, Distillery.",
        "  A - B , C  ",
        "GOVERNMENT WARNING: (1) According",
        "...,,,---",
        "",
    ])
    def test_idempotent(self, text):
        """Test normalizing twice equals normalizing once."""
        assert normalize_text(normalize_text(text)) == normalize_text(text)


class TestNormalizeWhitespace:
    """Test whitespace-only normalization."""

    def test_keeps_case_and_punctuation(self):
        """Test only whitespace changes."""
        assert normalize_whitespace("GOVERNMENT  WARNING:\n(1) Women,") == "GOVERNMENT WARNING: (1) Women,"


class TestIsBlank:
    """Test blank detection."""

    def test_blank_values(self):
        assert is_blank(None)
        assert is_blank("")
        assert is_blank("   \t")

    def test_non_blank(self):
        assert not is_blank("x")


class TestExtractPercentage:
    """Test alcohol percentage extraction."""

    def test_simple_percentage(self):
        """Test plain percentages."""
        assert extract_percentage("45%") == 45.0
        assert extract_percentage("12.5%") == 12.5

    def test_alc_vol_format(self):
        """Test percentage followed by descriptive text."""
        assert extract_percentage("45% Alc./Vol.") == 45.0
        assert extract_percentage("Alc. 13.5 % by Vol.") == 13.5

    def test_first_percentage_wins(self):
        """Test only the first percentage is returned."""
        assert extract_percentage("40% ABV (was 43%)") == 40.0

    def test_no_range_validation(self):
        """Test out-of-range values are returned as-is."""
        assert extract_percentage("150%") == 150.0

    def test_zero_is_not_no_match(self):
        """Test 0% is a value, distinct from no match."""
        assert extract_percentage("0% alcohol") == 0.0
        assert extract_percentage("0% alcohol") is not None

    def test_no_percentage(self):
        """Test strings without a percent sign."""
        assert extract_percentage("90 Proof") is None
        assert extract_percentage("") is None

    def test_non_ascii_digits_ignored(self):
        """Test digits from other scripts are not read as numbers."""
        assert extract_percentage("\u0664\u0665%") is None


class TestExtractVolume:
    """Test net contents extraction."""

    def test_millilitres(self):
        """Test mL variants normalize to the same unit."""
        assert extract_volume("750 mL") == Volume(750.0, "ml")
        assert extract_volume("750ml") == Volume(750.0, "ml")
        assert extract_volume("750 ML") == Volume(750.0, "ml")

    def test_litres(self):
        """Test litre statements."""
        assert extract_volume("1.75 L") == Volume(1.75, "l")

    def test_fluid_ounces(self):
        """Test 'fl oz' with and without the inner space."""
        assert extract_volume("12 FL OZ") == Volume(12.0, "floz")
        assert extract_volume("12 fl oz") == Volume(12.0, "floz")
        assert extract_volume("12 FLOZ") == Volume(12.0, "floz")

    def test_ounces(self):
        """Test plain ounces differ from fluid ounces."""
        assert extract_volume("12 oz") == Volume(12.0, "oz")

    def test_embedded_in_text(self):
        """Test volume found inside a longer statement."""
        assert extract_volume("Net Contents: 375   mL") == Volume(375.0, "ml")

    def test_no_volume(self):
        """Test strings without a number and unit."""
        assert extract_volume("one bottle") is None
        assert extract_volume("") is None

    def test_non_ascii_digits_ignored(self):
        """Test digits from other scripts are not read as numbers."""
        assert extract_volume("\u0667\u0665\u0660 ml") is None
