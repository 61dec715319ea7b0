"""
HTML entity decoding for text returned by the trivia API.
"""
import html
import logging

logger = logging.getLogger(__name__)


def sanitize(raw: str) -> str:
    """
    Decode HTML character entities into plain text.

    Decoding repeats until the text stops changing, so double-encoded input
    such as ``&amp;quot;`` ends up as ``"`` and sanitizing twice gives the
    same result as sanitizing once.

    Args:
        raw: Text that may contain entities like ``&quot;`` or ``&#039;``

    Returns:
        Decoded text, or ``raw`` unchanged if it could not be decoded
    """
    try:
        text = raw
        decoded = html.unescape(text)
        # Each successful decode shortens the text, so this terminates
        while decoded != text:
            text = decoded
            decoded = html.unescape(text)
        return decoded
    except (TypeError, ValueError, AttributeError) as e:
        logger.debug(f"Could not decode text {raw!r}: {e}")
        return raw
