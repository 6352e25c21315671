"""
Tests for multi-head attention module.

Tests cover:
- Scaled dot-product attention for a single head
- Multi-head attention: shapes, construction errors, head splitting
- Purity and determinism of the forward pass
- Permutation equivariance over sequence positions

Reference: "Attention Is All You Need" Section 3.2
"""

import numpy as np
import pytest


class TestScaledDotProductAttention:
    """
    Test suite for scaled dot-product attention.

    Formula: Attention(Q, K, V) = softmax(Q @ K^T / sqrt(d_k)) @ V
    """

    def test_output_shapes(self):
        from minillm.attention import scaled_dot_product_attention
        from minillm.matrix import initialize_matrix

        query = initialize_matrix(5, 4)
        key = initialize_matrix(6, 4)
        value = initialize_matrix(6, 3)

        output, attention_weights = scaled_dot_product_attention(query, key, value)

        assert output.shape == (5, 3), f"Expected (5, 3), got {output.shape}"
        assert attention_weights.shape == (5, 6)

    def test_weights_sum_to_one(self):
        from minillm.attention import scaled_dot_product_attention
        from minillm.matrix import initialize_matrix

        query = initialize_matrix(5, 8)
        key = initialize_matrix(5, 8)
        value = initialize_matrix(5, 8)

        _, attention_weights = scaled_dot_product_attention(query, key, value)

        assert np.allclose(attention_weights.data.sum(axis=1), 1.0), (
            "Attention weights should sum to 1 along the key dimension"
        )

    def test_matches_formula(self):
        from minillm.attention import scaled_dot_product_attention
        from minillm.matrix import initialize_matrix

        rng = np.random.default_rng(0)
        query = initialize_matrix(3, 4, rng=rng)
        key = initialize_matrix(3, 4, rng=rng)
        value = initialize_matrix(3, 4, rng=rng)

        output, _ = scaled_dot_product_attention(query, key, value)

        scores = query.data @ key.data.T / np.sqrt(4)
        weights = np.exp(scores - scores.max(axis=1, keepdims=True))
        weights /= weights.sum(axis=1, keepdims=True)
        assert np.allclose(output.data, weights @ value.data)

    def test_unscaled_variant(self):
        from minillm.attention import scaled_dot_product_attention
        from minillm.matrix import initialize_matrix, matmul, softmax, transpose

        rng = np.random.default_rng(1)
        query = initialize_matrix(3, 16, rng=rng)
        key = initialize_matrix(3, 16, rng=rng)
        value = initialize_matrix(3, 16, rng=rng)

        _, weights = scaled_dot_product_attention(
            query, key, value, scale_scores=False
        )

        expected = softmax(matmul(query, transpose(key)))
        assert weights.allclose(expected)

    def test_scaling_softens_distribution(self):
        """Scaled scores should give a flatter (higher entropy) distribution."""
        from minillm.attention import scaled_dot_product_attention
        from minillm.matrix import Matrix

        d_k = 64
        query = Matrix(np.ones((1, d_k)))
        key = Matrix(np.vstack([np.ones(d_k), np.zeros(d_k)]))
        value = Matrix(np.eye(2))

        _, scaled = scaled_dot_product_attention(query, key, value)
        _, unscaled = scaled_dot_product_attention(
            query, key, value, scale_scores=False
        )

        assert scaled[0, 1] > unscaled[0, 1]
        assert unscaled[0, 0] > 0.999, "Unscaled scores saturate the softmax"

    def test_equal_keys_get_equal_weights(self):
        from minillm.attention import scaled_dot_product_attention
        from minillm.matrix import Matrix, initialize_matrix

        query = initialize_matrix(1, 8)
        key = Matrix(np.ones((3, 8)))
        value = initialize_matrix(3, 8)

        _, weights = scaled_dot_product_attention(query, key, value)

        assert np.allclose(weights.data, 1.0 / 3.0)


class TestMultiHeadAttention:
    """Test suite for the multi-head self-attention layer."""

    @pytest.fixture
    def attention(self):
        from minillm.attention import MultiHeadAttention

        return MultiHeadAttention(
            num_heads=2, hidden_dim=8, rng=np.random.default_rng(42)
        )

    def test_head_dimension(self, attention):
        assert attention.head_dim == 4
        assert attention.num_heads == 2
        assert attention.hidden_dim == 8

    def test_weight_shapes(self, attention):
        for name, weight in attention.get_parameters().items():
            assert weight.shape == (8, 8), f"{name} has shape {weight.shape}"

    def test_output_shape(self, attention):
        """hidden_dim=8, num_heads=2, seq_len=5 -> 5 x 8."""
        from minillm.matrix import initialize_matrix

        x = initialize_matrix(5, 8)

        output = attention.forward(x)

        assert output.shape == (5, 8), f"Expected (5, 8), got {output.shape}"

    def test_single_token(self, attention):
        from minillm.matrix import initialize_matrix

        output = attention.forward(initialize_matrix(1, 8))

        assert output.shape == (1, 8)

    def test_indivisible_dimension_rejected(self):
        """hidden_dim=7 cannot be split into 2 heads."""
        from minillm.attention import MultiHeadAttention

        with pytest.raises(ValueError, match="divisible"):
            MultiHeadAttention(num_heads=2, hidden_dim=7)

    @pytest.mark.parametrize("num_heads, hidden_dim", [(0, 8), (2, 0), (-2, 8)])
    def test_non_positive_rejected(self, num_heads, hidden_dim):
        from minillm.attention import MultiHeadAttention

        with pytest.raises(ValueError):
            MultiHeadAttention(num_heads=num_heads, hidden_dim=hidden_dim)

    def test_wrong_input_width(self, attention):
        from minillm.matrix import initialize_matrix

        with pytest.raises(ValueError, match="columns"):
            attention.forward(initialize_matrix(5, 6))

    def test_deterministic(self, attention):
        """Two calls with the same input give identical output."""
        from minillm.matrix import initialize_matrix

        x = initialize_matrix(5, 8)

        first = attention.forward(x)
        second = attention.forward(x)

        assert np.array_equal(first.data, second.data)

    def test_weights_not_mutated(self, attention):
        from minillm.matrix import initialize_matrix

        before = {name: w.to_numpy() for name, w in attention.get_parameters().items()}

        attention.forward(initialize_matrix(4, 8))

        for name, weight in attention.get_parameters().items():
            assert np.array_equal(weight.data, before[name]), f"{name} changed"

    def test_matches_manual_computation(self, attention):
        """Forward should equal slicing, per-head attention, concat, projection."""
        from minillm.attention import scaled_dot_product_attention
        from minillm.matrix import (
            concatenate_columns,
            initialize_matrix,
            matmul,
            slice_matrix,
        )

        x = initialize_matrix(4, 8, rng=np.random.default_rng(7))
        params = attention.get_parameters()

        q = matmul(x, params["query_weight"])
        k = matmul(x, params["key_weight"])
        v = matmul(x, params["value_weight"])

        heads = []
        for head in range(2):
            start, end = head * 4, (head + 1) * 4
            output, _ = scaled_dot_product_attention(
                slice_matrix(q, 0, 4, start, end),
                slice_matrix(k, 0, 4, start, end),
                slice_matrix(v, 0, 4, start, end),
            )
            heads.append(output)
        expected = matmul(concatenate_columns(heads), params["output_weight"])

        assert attention.forward(x).allclose(expected)

    def test_permutation_equivariance(self, attention):
        """Permuting input rows permutes output rows the same way."""
        from minillm.matrix import initialize_matrix, take_rows

        x = initialize_matrix(6, 8, rng=np.random.default_rng(11))
        permutation = [3, 0, 5, 1, 4, 2]

        permuted_output = attention.forward(take_rows(x, permutation))
        output_permuted = take_rows(attention.forward(x), permutation)

        assert permuted_output.allclose(output_permuted, atol=1e-10)

    def test_attention_weights_per_head(self, attention):
        from minillm.matrix import initialize_matrix

        x = initialize_matrix(5, 8)

        head_weights = attention.attention_weights(x)

        assert len(head_weights) == 2
        for weights in head_weights:
            assert weights.shape == (5, 5)
            assert np.allclose(weights.data.sum(axis=1), 1.0)
            assert np.all(weights.data >= 0.0)

    def test_scaling_flag(self):
        from minillm.attention import MultiHeadAttention
        from minillm.matrix import initialize_matrix

        scaled = MultiHeadAttention(2, 8, rng=np.random.default_rng(3))
        unscaled = MultiHeadAttention(
            2, 8, scale_scores=False, rng=np.random.default_rng(3)
        )
        x = initialize_matrix(4, 8, rng=np.random.default_rng(4))

        assert not scaled.forward(x).allclose(unscaled.forward(x))
