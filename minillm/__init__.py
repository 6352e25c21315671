"""
Attention-Only Language Model from Scratch

This package implements the forward pass of a minimal transformer-style
language model: token embedding, sinusoidal positional encoding, and a single
multi-head self-attention layer, built on a small dense-matrix library. It is
designed for educational purposes; nothing is trained.

Modules:
    matrix: Dense matrix primitives (matmul, transpose, slicing, softmax, ...)
    layers: Linear projection, Embedding, PositionalEncoding
    attention: Scaled dot-product and multi-head self-attention
    tokenizer: Hash-based word tokenizer
    model: Model configuration and the forward pass
    cli: Command-line driver

Reference:
    "Attention Is All You Need" (Vaswani et al., 2017)
    https://arxiv.org/abs/1706.03762
"""

__version__ = "1.0.0"
__author__ = "Educational LLM Project"
