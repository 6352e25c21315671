"""
Attention-Only Language Model

This module assembles the full forward pass: text is tokenized, embedded,
given positional information, and passed through one multi-head
self-attention layer.

Architecture Overview:
    Input Text
           |
    [Tokenizer] -> Token IDs
           |
    [Token Embedding] + [Positional Encoding]
           |
    [Multi-Head Self-Attention]
           |
    Output Matrix (seq_len x hidden_dim)

There are no residual connections, layer normalization, feed-forward
sublayers, or output projection to the vocabulary. Weights are random and
fixed; nothing is trained.

Classes:
    LLMConfig: Configuration dataclass for model hyperparameters
    LLM: The model

Functions:
    create_model: Build a model from positional hyperparameters
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from minillm.attention import MultiHeadAttention
from minillm.layers import Embedding, PositionalEncoding
from minillm.matrix import Matrix, is_integer_index
from minillm.tokenizer import WordHashTokenizer


@dataclass
class LLMConfig:
    """
    Configuration for the model.

    Attributes:
        vocab_size: Size of the token vocabulary
        max_sequence_length: Maximum number of tokens in one forward pass
        hidden_dim: Width of embeddings and attention (d_model)
        num_heads: Number of attention heads; must divide hidden_dim
        scale_attention_scores: Scale attention scores by 1/sqrt(head_dim)
        seed: Seed for weight initialization (None = nondeterministic)

    Raises:
        ValueError: On construction, if a field has the wrong type, a size is
                    not positive, or hidden_dim is not divisible by num_heads
    """

    vocab_size: int = 30000
    max_sequence_length: int = 50000
    hidden_dim: int = 8
    num_heads: int = 2
    scale_attention_scores: bool = True
    seed: Optional[int] = None

    def __post_init__(self):
        for name in ("vocab_size", "max_sequence_length", "hidden_dim", "num_heads"):
            value = getattr(self, name)
            if not is_integer_index(value):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if self.seed is not None and not is_integer_index(self.seed):
            raise ValueError(f"seed must be an integer or None, got {self.seed!r}")

        if not isinstance(self.scale_attention_scores, bool):
            raise ValueError(
                f"scale_attention_scores must be a boolean, got "
                f"{self.scale_attention_scores!r}"
            )

        if self.hidden_dim % self.num_heads != 0:
            raise ValueError(
                f"hidden_dim ({self.hidden_dim}) must be divisible by "
                f"num_heads ({self.num_heads})"
            )

    @property
    def head_dim(self) -> int:
        return self.hidden_dim // self.num_heads

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "LLMConfig":
        """
        Build a config from a dictionary (e.g. parsed JSON).

        Raises:
            ValueError: If the dictionary contains unknown keys
        """
        known = {field.name for field in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

        return cls(**values)


class LLM:
    """
    Attention-only language model.

    The model owns:
    1. Token embedding: (vocab_size, hidden_dim) lookup table
    2. Positional encoding: (max_sequence_length, hidden_dim) sinusoidal table
    3. One multi-head self-attention layer

    Each forward pass is independent: nothing is cached or updated, so the
    same text always produces the same output for a given model.

    Example usage:
        config = LLMConfig(vocab_size=1000, max_sequence_length=64,
                           hidden_dim=8, num_heads=2, seed=0)
        model = LLM(config)
        output = model.forward_pass("Hello world")   # Matrix, shape (2, 8)

    Attributes:
        config: Model configuration
        tokenizer: Object with an encode(text) -> List[int] method
        token_embedding: Token ID -> vector embedding
        positional_encoding: Position -> encoding vector
        attention: Multi-head self-attention layer
    """

    def __init__(self, config: LLMConfig, tokenizer=None):
        """
        Initialize the model.

        Args:
            config: LLMConfig with model hyperparameters
            tokenizer: Optional tokenizer; defaults to a WordHashTokenizer
                       over config.vocab_size
        """
        self.config = config
        if tokenizer is None:
            tokenizer = WordHashTokenizer(config.vocab_size)
        self.tokenizer = tokenizer

        rng = np.random.default_rng(config.seed)

        self.token_embedding = Embedding(
            vocabulary_size=config.vocab_size,
            embedding_dimension=config.hidden_dim,
            rng=rng,
        )

        self.positional_encoding = PositionalEncoding(
            max_sequence_length=config.max_sequence_length,
            embedding_dimension=config.hidden_dim,
        )

        self.attention = MultiHeadAttention(
            num_heads=config.num_heads,
            hidden_dim=config.hidden_dim,
            scale_scores=config.scale_attention_scores,
            rng=rng,
        )

    def tokenize(self, text: str) -> List[int]:
        """
        Convert text to validated token IDs.

        Raises:
            ValueError: If the text yields no tokens, a token ID is not an
                        integer or is outside [0, vocab_size), or there are
                        more tokens than max_sequence_length
        """
        tokens = list(self.tokenizer.encode(text))
        self._validate_tokens(tokens)
        return tokens

    def _validate_tokens(self, tokens: Sequence[int]) -> None:
        if len(tokens) == 0:
            raise ValueError("Input produced no tokens")

        if len(tokens) > self.config.max_sequence_length:
            raise ValueError(
                f"Sequence length {len(tokens)} exceeds maximum "
                f"{self.config.max_sequence_length}"
            )

        for position, token in enumerate(tokens):
            if not is_integer_index(token):
                raise ValueError(
                    f"Token ID at position {position} must be an integer, got {token!r}"
                )
            if not 0 <= token < self.config.vocab_size:
                raise ValueError(
                    f"Token ID {token} at position {position} out of range "
                    f"[0, {self.config.vocab_size})"
                )

    def token_embedding_matrix(self, tokens: Sequence[int]) -> Matrix:
        """
        Look up embeddings for tokens.

        Returns:
            Matrix of shape (len(tokens), hidden_dim), row i = embedding of tokens[i]
        """
        return self.token_embedding.forward(tokens)

    def forward_tokens(self, tokens: Sequence[int]) -> Matrix:
        """
        Forward pass for already-tokenized input.

        Args:
            tokens: Token IDs, each in [0, vocab_size), at most
                    max_sequence_length of them

        Returns:
            Matrix of shape (len(tokens), hidden_dim)
        """
        tokens = list(tokens)
        self._validate_tokens(tokens)

        # Step 1: Token embedding
        # (seq_len,) -> (seq_len, hidden_dim)
        token_embeddings = self.token_embedding_matrix(tokens)

        # Step 2: Add positional encoding for the first seq_len positions
        hidden_states = self.positional_encoding.forward(token_embeddings)

        # Step 3: Self-attention
        return self.attention.forward(hidden_states)

    def forward_pass(self, text: str) -> Matrix:
        """
        Run the full forward pass on text.

        Args:
            text: Input text

        Returns:
            Matrix of shape (seq_len, hidden_dim) where seq_len is the number
            of tokens in the text
        """
        return self.forward_tokens(self.tokenize(text))

    def get_parameters(self) -> Dict[str, Matrix]:
        """
        Get all fixed tables and weights.

        Returns:
            Dictionary mapping parameter names to matrices
        """
        params = {"token_embedding.weight": self.token_embedding.embedding_table}
        for name, param in self.attention.get_parameters().items():
            params[f"attention.{name}"] = param
        return params

    def count_parameters(self) -> int:
        """Count random (non-positional) values in the model."""
        total = 0
        for param in self.get_parameters().values():
            total += param.rows * param.cols
        return total


def create_model(
    vocab_size: int,
    max_sequence_length: int,
    hidden_dim: int,
    num_heads: int,
    seed: Optional[int] = None,
) -> LLM:
    """
    Create a model from hyperparameters.

    Args:
        vocab_size: Size of the token vocabulary
        max_sequence_length: Maximum sequence length
        hidden_dim: Hidden dimension
        num_heads: Number of attention heads (must divide hidden_dim)
        seed: Optional seed for weight initialization

    Returns:
        LLM instance
    """
    config = LLMConfig(
        vocab_size=vocab_size,
        max_sequence_length=max_sequence_length,
        hidden_dim=hidden_dim,
        num_heads=num_heads,
        seed=seed,
    )
    return LLM(config)


# =============================================================================
# EDUCATIONAL DEMO
# Run with: python -m minillm.model
# =============================================================================
if __name__ == "__main__":
    print("=" * 70)
    print("ATTENTION-ONLY MODEL DEMO")
    print("=" * 70)
    print()

    model = create_model(
        vocab_size=30000, max_sequence_length=512, hidden_dim=8, num_heads=2, seed=42
    )
    text = "This doesn't matter for the moment"

    print(f"Text: {text!r}")
    print(f"Pieces: {model.tokenizer.split(text)}")
    print(f"Token IDs: {model.tokenize(text)}")
    print()

    output = model.forward_pass(text)
    print(f"Output shape: {output.shape} (one row per token, hidden_dim columns)")
    print(f"Parameters: {model.count_parameters():,}")
