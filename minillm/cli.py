"""
Forward Pass Command-Line Driver

Builds a model from hyperparameters, runs one forward pass over a piece of
text, and prints the output matrix.

Usage:
    minillm-forward [TEXT] [options]

    Options:
        --vocab-size N            Vocabulary size (default 30000)
        --max-sequence-length N   Maximum tokens per pass (default 50000)
        --hidden-dim N            Hidden dimension (default 8)
        --num-heads N             Attention heads (default 2)
        --seed N                  Seed for weight initialization
        --no-scale                Disable 1/sqrt(head_dim) score scaling
        --config FILE             JSON file with any of the fields above;
                                  command-line flags take precedence
        --show-attention          Also print each head's attention weights
        --precision N             Decimal places when printing (default 4)

Example:
    minillm-forward "This doesn't matter for the moment" --seed 0
"""

import argparse
import json
import sys
from typing import List, Optional

import numpy as np

from minillm.matrix import Matrix
from minillm.model import LLM, LLMConfig

DEFAULT_TEXT = "This doesn't matter for the moment"

# Command-line destination -> LLMConfig field
_CONFIG_FLAGS = {
    "vocab_size": "vocab_size",
    "max_sequence_length": "max_sequence_length",
    "hidden_dim": "hidden_dim",
    "num_heads": "num_heads",
    "seed": "seed",
}


def print_header(text: str):
    """Print a formatted header."""
    print()
    print("=" * 60)
    print(text)
    print("=" * 60)
    print()


def print_section(text: str):
    """Print a section divider."""
    print()
    print("-" * 40)
    print(text)
    print("-" * 40)


def format_matrix(matrix: Matrix, precision: int = 4) -> str:
    """Render a matrix with fixed precision, one row per line."""
    return np.array2string(
        matrix.data,
        precision=precision,
        suppress_small=True,
        max_line_width=120,
        threshold=sys.maxsize,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run one attention-only forward pass over a piece of text"
    )
    parser.add_argument(
        "text", nargs="?", default=DEFAULT_TEXT, help="Text to run through the model"
    )
    parser.add_argument("--vocab-size", dest="vocab_size", type=int)
    parser.add_argument("--max-sequence-length", dest="max_sequence_length", type=int)
    parser.add_argument("--hidden-dim", dest="hidden_dim", type=int)
    parser.add_argument("--num-heads", dest="num_heads", type=int)
    parser.add_argument("--seed", type=int)
    parser.add_argument(
        "--no-scale",
        action="store_true",
        help="Disable 1/sqrt(head_dim) scaling of attention scores",
    )
    parser.add_argument("--config", help="JSON file with model hyperparameters")
    parser.add_argument(
        "--show-attention",
        action="store_true",
        help="Print each head's attention weights",
    )
    parser.add_argument(
        "--precision", type=int, default=4, help="Decimal places when printing"
    )
    return parser


def load_config(args: argparse.Namespace) -> LLMConfig:
    """
    Merge the JSON config file (if any) with command-line flags.

    Raises:
        ValueError: If the file is not a JSON object, or the merged values
                    are not a valid configuration
    """
    values = {}
    if args.config:
        with open(args.config, "r", encoding="utf-8") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {args.config} must contain a JSON object")
        values.update(loaded)

    for dest, field_name in _CONFIG_FLAGS.items():
        value = getattr(args, dest)
        if value is not None:
            values[field_name] = value

    if args.no_scale:
        values["scale_attention_scores"] = False

    return LLMConfig.from_dict(values)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
        model = LLM(config)
        tokens = model.tokenize(args.text)
        output = model.forward_tokens(tokens)
    except (OSError, ValueError) as error:
        print(f"Error: {error}", file=sys.stderr)
        return 2

    print_header("Attention-Only Forward Pass")
    print(f"Vocabulary size: {config.vocab_size:,}")
    print(f"Max sequence length: {config.max_sequence_length:,}")
    print(f"Hidden dimension: {config.hidden_dim}")
    print(f"Heads: {config.num_heads} (head dimension {config.head_dim})")
    print(f"Score scaling: {'on' if config.scale_attention_scores else 'off'}")
    print(f"Parameters: {model.count_parameters():,}")

    print_section("Input")
    print(f"Text: {args.text!r}")
    print(f"Token IDs: {tokens}")

    print_section(f"Output {output.rows} x {output.cols}")
    print(format_matrix(output, precision=args.precision))

    if args.show_attention:
        hidden_states = model.positional_encoding.forward(
            model.token_embedding_matrix(tokens)
        )
        for head, weights in enumerate(model.attention.attention_weights(hidden_states)):
            print_section(f"Head {head} attention weights")
            print(format_matrix(weights, precision=args.precision))

    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
