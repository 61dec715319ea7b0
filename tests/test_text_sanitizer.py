"""
Unit tests for HTML entity decoding.
"""
import unittest

from trivia_game.text_sanitizer import sanitize


class TestSanitize(unittest.TestCase):
    """Test cases for sanitize()."""

    def test_named_entities(self):
        """Test that named entities are decoded."""
        self.assertEqual(sanitize("Tom &amp; Jerry"), "Tom & Jerry")
        self.assertEqual(sanitize("&quot;Hello&quot;"), '"Hello"')
        self.assertEqual(sanitize("&lt;b&gt;"), "<b>")

    def test_numeric_entities(self):
        """Test decimal and hexadecimal entities."""
        self.assertEqual(sanitize("It&#039;s"), "It's")
        self.assertEqual(sanitize("Caf&#xE9;"), "Café")

    def test_accented_named_entities(self):
        self.assertEqual(sanitize("Pok&eacute;mon"), "Pokémon")

    def test_plain_text_unchanged(self):
        """Test that text without entities passes through untouched."""
        text = "What is the capital of France?"
        self.assertEqual(sanitize(text), text)

    def test_empty_string(self):
        self.assertEqual(sanitize(""), "")

    def test_double_encoded_entities(self):
        """Test that double-encoded entities are fully decoded."""
        self.assertEqual(sanitize("&amp;quot;"), '"')
        self.assertEqual(sanitize("&amp;amp;"), "&")

    def test_idempotent(self):
        """Test that sanitizing twice equals sanitizing once."""
        samples = [
            "Tom &amp; Jerry",
            "&amp;quot;quoted&amp;quot;",
            "It&#039;s &lt;fine&gt;",
            "AT&T",
            "plain",
            "&amp;amp;amp;",
        ]
        for sample in samples:
            with self.subTest(sample=sample):
                once = sanitize(sample)
                self.assertEqual(sanitize(once), once)

    def test_bare_ampersand_kept(self):
        """Test that an ampersand that is not an entity is kept."""
        self.assertEqual(sanitize("AT&T"), "AT&T")

    def test_non_string_input_returned_unchanged(self):
        """Test that undecodable input is returned as-is."""
        self.assertIsNone(sanitize(None))
        self.assertEqual(sanitize(42), 42)


if __name__ == '__main__':
    unittest.main()
