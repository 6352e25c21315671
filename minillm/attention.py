"""
Multi-Head Attention Mechanism

This module implements the attention mechanism from the Transformer
architecture: scaled dot-product attention and a multi-head self-attention
layer that runs it on several column slices of the hidden dimension.

Attention lets every position in a sequence build its new representation as
a weighted mix of all positions, with weights that depend on how well its
query matches each key.

There is no masking: every position attends to every position, including
later ones.

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.2
           https://arxiv.org/abs/1706.03762

Functions:
    scaled_dot_product_attention: Single-head attention computation

Classes:
    MultiHeadAttention: Multi-head self-attention layer with projections
"""

from typing import Dict, List, Optional, Tuple

import numpy as np

from minillm.layers import Linear
from minillm.matrix import (
    Matrix,
    apply_function,
    concatenate_columns,
    matmul,
    slice_matrix,
    softmax,
    transpose,
)


def scaled_dot_product_attention(
    query: Matrix,
    key: Matrix,
    value: Matrix,
    scale_scores: bool = True,
) -> Tuple[Matrix, Matrix]:
    """
    Compute Scaled Dot-Product Attention for a single head.

    Mathematical Formula (from the paper):
        Attention(Q, K, V) = softmax(Q @ K^T / sqrt(d_k)) @ V

    Step-by-step:
        1. Compute attention scores: Q @ K^T (how similar each query is to each key)
        2. Scale by 1/sqrt(d_k) so the softmax does not saturate for large d_k
        3. Apply row-wise softmax to get attention weights
        4. Multiply by V to get weighted combination of values

    Args:
        query: Query matrix of shape (seq_len_q, d_k)
        key: Key matrix of shape (seq_len_k, d_k)
        value: Value matrix of shape (seq_len_k, d_v)
        scale_scores: Whether to apply the 1/sqrt(d_k) scaling

    Returns:
        output: Attention output of shape (seq_len_q, d_v)
        attention_weights: Attention weights of shape (seq_len_q, seq_len_k)
    """
    d_k = query.cols

    # Step 1: (seq_q, d_k) @ (d_k, seq_k) -> (seq_q, seq_k)
    attention_scores = matmul(query, transpose(key))

    # Step 2: Scale by 1/sqrt(d_k)
    if scale_scores:
        scaling_factor = 1.0 / np.sqrt(d_k)
        attention_scores = apply_function(
            attention_scores, lambda score: score * scaling_factor
        )

    # Step 3: Each query position gets a distribution over key positions
    attention_weights = softmax(attention_scores)

    # Step 4: (seq_q, seq_k) @ (seq_k, d_v) -> (seq_q, d_v)
    attention_output = matmul(attention_weights, value)

    return attention_output, attention_weights


class MultiHeadAttention:
    """
    Multi-Head Self-Attention Layer.

    Instead of performing a single attention function over the full hidden
    dimension, the projected queries, keys and values are split into
    num_heads column slices. Attention runs on each slice independently and
    the results are concatenated and projected back.

    Mathematical Formula:
        MultiHead(X) = Concat(head_1, ..., head_h) @ W^O
        where head_i = Attention(Q_i, K_i, V_i)
        and Q_i, K_i, V_i are column slices of X @ W^Q, X @ W^K, X @ W^V

    Attributes:
        num_heads: Number of attention heads (h)
        hidden_dim: Total hidden dimension (d_model)
        head_dim: Dimension of each head (d_k = d_model / h)
        scale_scores: Whether scores are scaled by 1/sqrt(head_dim)
        query_projection: W^Q
        key_projection: W^K
        value_projection: W^V
        output_projection: W^O

    The weights are never modified after construction, so forward() is a
    pure function of its input.

    Reference: "Attention Is All You Need" Section 3.2.2
    """

    def __init__(
        self,
        num_heads: int,
        hidden_dim: int,
        scale_scores: bool = True,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize Multi-Head Attention layer.

        Args:
            num_heads: Number of attention heads
            hidden_dim: Size of input/output rows (d_model)
            scale_scores: Whether to scale scores by 1/sqrt(head_dim)
            rng: Random generator used for the projection weights

        Raises:
            ValueError: If a dimension is not positive or hidden_dim is not
                        divisible by num_heads
        """
        if num_heads <= 0 or hidden_dim <= 0:
            raise ValueError(
                f"num_heads ({num_heads}) and hidden_dim ({hidden_dim}) must be positive"
            )
        if hidden_dim % num_heads != 0:
            raise ValueError(
                f"Hidden dimension ({hidden_dim}) must be divisible by "
                f"number of heads ({num_heads})"
            )

        self.num_heads = num_heads
        self.hidden_dim = hidden_dim
        self.head_dim = hidden_dim // num_heads
        self.scale_scores = scale_scores

        # Each projects from d_model to d_model
        self.query_projection = Linear(hidden_dim, hidden_dim, rng=rng)
        self.key_projection = Linear(hidden_dim, hidden_dim, rng=rng)
        self.value_projection = Linear(hidden_dim, hidden_dim, rng=rng)
        self.output_projection = Linear(hidden_dim, hidden_dim, rng=rng)

    def _head_slice(self, matrix: Matrix, head: int) -> Matrix:
        start = head * self.head_dim
        return slice_matrix(matrix, 0, matrix.rows, start, start + self.head_dim)

    def _attend(self, input_matrix: Matrix) -> Tuple[List[Matrix], List[Matrix]]:
        if input_matrix.cols != self.hidden_dim:
            raise ValueError(
                f"Expected input with {self.hidden_dim} columns, got shape {input_matrix.shape}"
            )

        # Step 1: Project Q, K, V
        projected_query = self.query_projection.forward(input_matrix)
        projected_key = self.key_projection.forward(input_matrix)
        projected_value = self.value_projection.forward(input_matrix)

        # Steps 2-3: Run attention on each head's column slice
        head_outputs = []
        head_weights = []
        for head in range(self.num_heads):
            output, weights = scaled_dot_product_attention(
                self._head_slice(projected_query, head),
                self._head_slice(projected_key, head),
                self._head_slice(projected_value, head),
                scale_scores=self.scale_scores,
            )
            head_outputs.append(output)
            head_weights.append(weights)

        return head_outputs, head_weights

    def forward(self, input_matrix: Matrix) -> Matrix:
        """
        Forward pass through multi-head self-attention.

        Args:
            input_matrix: Sequence embedding, shape (seq_len, hidden_dim)

        Returns:
            output: Shape (seq_len, hidden_dim)

        Raises:
            ValueError: If the input does not have hidden_dim columns
        """
        head_outputs, _ = self._attend(input_matrix)

        # Step 4: (seq, head_dim) x h -> (seq, hidden_dim)
        concatenated_output = concatenate_columns(head_outputs)

        # Step 5: Final output projection
        return self.output_projection.forward(concatenated_output)

    def attention_weights(self, input_matrix: Matrix) -> List[Matrix]:
        """
        Return each head's attention weights for an input.

        Args:
            input_matrix: Sequence embedding, shape (seq_len, hidden_dim)

        Returns:
            One (seq_len, seq_len) Matrix per head; row i is the distribution
            position i places over all positions.
        """
        _, head_weights = self._attend(input_matrix)
        return head_weights

    def get_parameters(self) -> Dict[str, Matrix]:
        """Return all projection weights."""
        return {
            "query_weight": self.query_projection.weights,
            "key_weight": self.key_projection.weights,
            "value_weight": self.value_projection.weights,
            "output_weight": self.output_projection.weights,
        }


# =============================================================================
# EDUCATIONAL DEMO
# Run with: python -m minillm.attention
# =============================================================================
if __name__ == "__main__":
    print("=" * 70)
    print("MULTI-HEAD ATTENTION DEMO")
    print("=" * 70)
    print()
    print("The attention formula:")
    print("  Attention(Q, K, V) = softmax(Q @ K.T / sqrt(d_k)) @ V")
    print()

    from minillm.matrix import initialize_matrix

    rng = np.random.default_rng(42)
    seq_len = 4
    hidden_dim = 8
    num_heads = 2

    mha = MultiHeadAttention(num_heads=num_heads, hidden_dim=hidden_dim, rng=rng)
    x = initialize_matrix(seq_len, hidden_dim, rng=rng)

    print(f"Hidden dimension: {hidden_dim}, heads: {num_heads}, head dimension: {mha.head_dim}")
    print(f"Input shape: {x.shape}")
    print(f"Output shape: {mha.forward(x).shape}")
    print()

    for head, weights in enumerate(mha.attention_weights(x)):
        print(f"Head {head} attention weights (each row sums to 1.0):")
        print("         " + "  ".join(f"Tok{j}" for j in range(seq_len)))
        for i, row in enumerate(weights):
            print(f"  Pos {i}:  " + "  ".join(f"{w:.2f}" for w in row))
        print()
