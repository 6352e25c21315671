"""
Word Hashing Tokenizer

A fixed, training-free tokenizer that maps text to token IDs in
[0, vocabulary_size). It exists so the forward pass has a deterministic,
well-defined text-to-IDs mapping without a learned vocabulary.

Algorithm:
    1. Split text into words (runs of letters/digits/underscore) and single
       punctuation marks; whitespace is dropped
    2. Lower-case each piece
    3. Token ID = CRC32(UTF-8 bytes of the piece) mod vocabulary_size

CRC32 is used instead of Python's hash() because hash() of a str is salted
per process, which would change token IDs between runs.

Different words can collide on the same ID when the vocabulary is small.

Classes:
    WordHashTokenizer: Hash-based word tokenizer with split and encode methods
"""

import re
import zlib
from typing import List

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]")


class WordHashTokenizer:
    """
    Hash-based word tokenizer.

    Attributes:
        vocabulary_size: Number of distinct token IDs the tokenizer can emit

    Example:
        >>> tokenizer = WordHashTokenizer(vocabulary_size=30000)
        >>> tokenizer.split("This doesn't matter")
        ['this', 'doesn', "'", 't', 'matter']
        >>> len(tokenizer.encode("This doesn't matter"))
        5
    """

    def __init__(self, vocabulary_size: int):
        if vocabulary_size <= 0:
            raise ValueError(
                f"Vocabulary size must be positive, got {vocabulary_size}"
            )
        self.vocabulary_size = vocabulary_size

    def split(self, text: str) -> List[str]:
        """Split text into lower-cased word and punctuation pieces."""
        return [piece.lower() for piece in _TOKEN_PATTERN.findall(text)]

    def token_id(self, piece: str) -> int:
        """Map a single piece to its token ID."""
        return zlib.crc32(piece.encode("utf-8")) % self.vocabulary_size

    def encode(self, text: str) -> List[int]:
        """
        Encode text to token IDs.

        Args:
            text: Input text

        Returns:
            One token ID per piece, in order. Empty for text with no words
            or punctuation.
        """
        return [self.token_id(piece) for piece in self.split(text)]
