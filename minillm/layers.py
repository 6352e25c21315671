"""
Layers for the Attention Model

This module implements the building blocks that sit around the attention
layer. None of them are trained: every table and weight is created once at
construction and only read afterwards.

All computation goes through the Matrix primitives in minillm.matrix.

Classes:
    Linear: Weight-only projection (y = x @ W)
    Embedding: Token ID to dense vector lookup table
    PositionalEncoding: Sinusoidal position table

Reference:
    - "Attention Is All You Need" (Vaswani et al., 2017)
"""

from typing import Dict, Optional, Sequence

import numpy as np

from minillm.matrix import (
    Matrix,
    add,
    initialize_matrix,
    is_integer_index,
    matmul,
    slice_matrix,
    take_rows,
)


class Linear:
    """
    Linear projection without bias.

    Computes y = x @ W, where W has shape (input_features, output_features).
    The attention layer uses four of these for the query, key, value and
    output projections.

    Weight Initialization:
        Xavier/Glorot initialization: W ~ N(0, sqrt(2 / (fan_in + fan_out)))
        This keeps the variance of activations roughly constant through the
        projection.
    """

    def __init__(
        self,
        input_features: int,
        output_features: int,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize the projection with Xavier initialization.

        Args:
            input_features: Size of input dimension (fan_in)
            output_features: Size of output dimension (fan_out)
            rng: Random generator used for the weights
        """
        self.input_features = input_features
        self.output_features = output_features

        weight_std = np.sqrt(2.0 / (input_features + output_features))
        self.weights = initialize_matrix(
            input_features, output_features, scale=weight_std, rng=rng
        )

    def forward(self, input_matrix: Matrix) -> Matrix:
        """
        Forward pass: y = x @ W

        Args:
            input_matrix: Input of shape (seq_len, input_features)

        Returns:
            Output of shape (seq_len, output_features)
        """
        return matmul(input_matrix, self.weights)

    def get_parameters(self) -> Dict[str, Matrix]:
        """Return dictionary of parameters."""
        return {"weight": self.weights}


class Embedding:
    """
    Embedding Layer (Lookup Table).

    Converts discrete token IDs into dense vectors by looking up rows of the
    embedding table: row i of the output is the table row for token_ids[i].

    Reference: "Attention Is All You Need" Section 3.4
    """

    def __init__(
        self,
        vocabulary_size: int,
        embedding_dimension: int,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize Embedding layer.

        Args:
            vocabulary_size: Number of unique tokens in vocabulary
            embedding_dimension: Size of embedding vectors
            rng: Random generator used for the table
        """
        self.vocabulary_size = vocabulary_size
        self.embedding_dimension = embedding_dimension

        # Scale by 1/sqrt(d) is common practice
        scale = 1.0 / np.sqrt(embedding_dimension)
        self.embedding_table = initialize_matrix(
            vocabulary_size, embedding_dimension, scale=scale, rng=rng
        )

    def forward(self, token_ids: Sequence[int]) -> Matrix:
        """
        Look up embeddings for a sequence of token IDs.

        Args:
            token_ids: Token IDs, each in [0, vocabulary_size)

        Returns:
            Matrix of shape (len(token_ids), embedding_dimension)

        Raises:
            ValueError: If a token ID is not an integer or is outside the
                        vocabulary
        """
        for token_id in token_ids:
            if not is_integer_index(token_id):
                raise ValueError(f"Token ID must be an integer, got {token_id!r}")
            if not 0 <= token_id < self.vocabulary_size:
                raise ValueError(
                    f"Token ID {token_id} out of range [0, {self.vocabulary_size})"
                )

        return take_rows(self.embedding_table, token_ids)

    def get_parameters(self) -> Dict[str, Matrix]:
        return {"embedding_table": self.embedding_table}


class PositionalEncoding:
    """
    Sinusoidal Positional Encoding.

    Adds position information to embeddings using fixed sinusoidal patterns,
    so that the same token at different positions gets a different vector.

    Formula, for position p and dimension index i:
        PE(p, i) = sin(p / 10000^(2i / d_model))        for even i
        PE(p, i) = cos(p / 10000^(2(i - 1) / d_model))  for odd i

    Each odd column uses the same frequency as the even column before it.
    The table is fixed (not learned) and bounded in [-1, 1].

    Reference: "Attention Is All You Need" Section 3.5
    """

    def __init__(self, max_sequence_length: int, embedding_dimension: int):
        """
        Initialize and precompute positional encodings.

        Args:
            max_sequence_length: Maximum sequence length to support
            embedding_dimension: Must match the embedding dimension of the model
        """
        if max_sequence_length <= 0 or embedding_dimension <= 0:
            raise ValueError(
                f"Positional encoding dimensions must be positive, got "
                f"({max_sequence_length}, {embedding_dimension})"
            )

        self.max_sequence_length = max_sequence_length
        self.embedding_dimension = embedding_dimension

        self.encoding_table = self._create_encoding_table()

    def _create_encoding_table(self) -> Matrix:
        """
        Create the full positional encoding table.

        Returns:
            encoding_table: Matrix of shape (max_sequence_length, embedding_dimension)
        """
        # Position indices: [0, 1, 2, ..., max_seq_len-1]
        positions = np.arange(self.max_sequence_length)[:, np.newaxis]

        # Even index of each sin/cos pair: [0, 0, 2, 2, 4, 4, ...]
        dimension_indices = np.arange(self.embedding_dimension)
        pair_indices = dimension_indices - (dimension_indices % 2)

        # angle_rate = 1 / 10000^(2i/d_model), shared by each pair
        angle_rates = 1.0 / np.power(
            10000.0, (2 * pair_indices) / self.embedding_dimension
        )

        angles = positions * angle_rates[np.newaxis, :]

        # Apply sin to even indices, cos to odd indices
        encoding_table = np.zeros_like(angles)
        encoding_table[:, 0::2] = np.sin(angles[:, 0::2])
        encoding_table[:, 1::2] = np.cos(angles[:, 1::2])

        return Matrix(encoding_table)

    def get_encoding(self, sequence_length: int) -> Matrix:
        """
        Get positional encoding for a specific sequence length.

        Args:
            sequence_length: Length of the sequence (must be <= max_sequence_length)

        Returns:
            encoding: Matrix of shape (sequence_length, embedding_dimension)
        """
        if sequence_length > self.max_sequence_length:
            raise ValueError(
                f"Sequence length {sequence_length} exceeds maximum {self.max_sequence_length}"
            )

        return slice_matrix(
            self.encoding_table, 0, sequence_length, 0, self.embedding_dimension
        )

    def forward(self, embeddings: Matrix) -> Matrix:
        """
        Add positional encoding to input embeddings.

        Args:
            embeddings: Matrix of shape (sequence_length, embedding_dimension)

        Returns:
            Output with positional encoding added, same shape as input
        """
        position_encoding = self.get_encoding(embeddings.rows)

        return add(embeddings, position_encoding)
