"""
Tests for the command line entry point.
"""

import json

import pytest

from reqingest.cli import build_parser, main


class TestCli:
    """Tests for `reqingest extract`."""

    def test_parser_requires_project(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["extract", "doc.pdf"])

    def test_parser_options(self):
        args = build_parser().parse_args(
            ["extract", "doc.pdf", "--project", "P", "--max-chunks", "4", "--inline"]
        )
        assert args.file == "doc.pdf"
        assert args.max_chunks == 4
        assert args.inline

    def test_extract_inline_to_file(self, tmp_path, fake_llm, requirements_file):
        """Test an inline run writes the aggregated result."""
        output = tmp_path / "items.json"

        code = main(
            ["extract", str(requirements_file), "--project", "Billing", "--inline", "-o", str(output)]
        )

        assert code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert [i["title"] for i in data["items"]] == ["Invoice export", "Audit log"]
        assert len(fake_llm) == 1

    def test_extract_inline_stdout(self, capsys, fake_llm, requirements_file):
        code = main(["extract", str(requirements_file), "--project", "Billing", "--inline"])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["chunks_total"] == 1

    def test_extract_missing_file(self, tmp_path):
        code = main(["extract", str(tmp_path / "missing.pdf"), "--project", "Billing", "--inline"])
        assert code == 1

    def test_bad_config(self, tmp_path, capsys):
        code = main(["--config", str(tmp_path / "nope.yaml"), "extract", "x.pdf", "--project", "P"])

        assert code == 2
        assert "Config file not found" in capsys.readouterr().err
