"""
Tests for the command-line driver.

Tests cover:
- Default run prints the output matrix
- Flags and JSON config files, with flags taking precedence
- Error reporting and exit status
"""

import json

import pytest

from minillm.cli import build_parser, load_config, main


class TestLoadConfig:
    """Merging of JSON config files and command-line flags."""

    def test_defaults(self):
        config = load_config(build_parser().parse_args([]))

        assert config.vocab_size == 30000
        assert config.hidden_dim == 8
        assert config.num_heads == 2
        assert config.scale_attention_scores is True

    def test_flags(self):
        args = build_parser().parse_args(
            ["--hidden-dim", "12", "--num-heads", "3", "--seed", "1", "--no-scale"]
        )

        config = load_config(args)

        assert config.hidden_dim == 12
        assert config.num_heads == 3
        assert config.seed == 1
        assert config.scale_attention_scores is False

    def test_file_with_flag_override(self, tmp_path):
        config_path = tmp_path / "model.json"
        config_path.write_text(
            json.dumps({"vocab_size": 500, "hidden_dim": 16, "num_heads": 4})
        )
        args = build_parser().parse_args(
            ["--config", str(config_path), "--num-heads", "8"]
        )

        config = load_config(args)

        assert config.vocab_size == 500
        assert config.hidden_dim == 16
        assert config.num_heads == 8, "Command-line flags should override the file"

    def test_file_must_be_object(self, tmp_path):
        config_path = tmp_path / "model.json"
        config_path.write_text("[1, 2, 3]")

        with pytest.raises(ValueError, match="JSON object"):
            load_config(build_parser().parse_args(["--config", str(config_path)]))


class TestMain:
    """End-to-end runs of the driver."""

    def test_default_run(self, capsys):
        exit_code = main(["--max-sequence-length", "64", "--seed", "0"])

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "Attention-Only Forward Pass" in output
        # "This doesn't matter for the moment" -> 8 pieces
        assert "Output 8 x 8" in output

    def test_show_attention(self, capsys):
        exit_code = main(
            ["hello world", "--max-sequence-length", "8", "--show-attention"]
        )

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "Head 0 attention weights" in output
        assert "Head 1 attention weights" in output

    def test_invalid_heads(self, capsys):
        exit_code = main(["--hidden-dim", "7", "--num-heads", "2"])

        captured = capsys.readouterr()
        assert exit_code == 2
        assert "divisible" in captured.err

    def test_text_too_long(self, capsys):
        exit_code = main(["a b c d e", "--max-sequence-length", "4"])

        assert exit_code == 2
        assert "exceeds maximum" in capsys.readouterr().err

    def test_missing_config_file(self, tmp_path, capsys):
        exit_code = main(["--config", str(tmp_path / "missing.json")])

        assert exit_code == 2
        assert "Error:" in capsys.readouterr().err

    def test_string_scale_flag_in_config(self, tmp_path, capsys):
        config_path = tmp_path / "model.json"
        config_path.write_text(json.dumps({"scale_attention_scores": "false"}))

        exit_code = main(["--config", str(config_path)])

        assert exit_code == 2
        assert "must be a boolean" in capsys.readouterr().err
