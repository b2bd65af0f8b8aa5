"""
Tests for the command line interface.
"""

import json

from backend.condparser.cli import EXIT_ERROR, EXIT_FALSE, EXIT_TRUE, main


class TestEvalCommand:
    """Tests for 'condparser eval'."""

    def test_true_expression(self, capsys):
        """Test exit code and output for a true result."""
        assert main(["eval", "a && !b", "-t", "a"]) == EXIT_TRUE
        assert capsys.readouterr().out.strip() == "true"

    def test_false_expression(self, capsys):
        """Test exit code and output for a false result."""
        assert main(["eval", "a && b", "--true", "a"]) == EXIT_FALSE
        assert capsys.readouterr().out.strip() == "false"

    def test_malformed_expression(self, capsys):
        """Test diagnostics go to stderr with an error exit code."""
        assert main(["eval", "a &"]) == EXIT_ERROR
        captured = capsys.readouterr()
        assert "Unknown character: &" in captured.err
        assert captured.out.strip() == "false"

    def test_json_output(self, capsys):
        """Test JSON output."""
        assert main(["eval", "x || y", "-t", "y", "--json"]) == EXIT_TRUE
        data = json.loads(capsys.readouterr().out)
        assert data["value"] is True
        assert data["resolved"] == ["x", "y"]

    def test_short_circuit_flag(self, capsys):
        """Test the short-circuit switch."""
        assert main(["eval", "x || y", "-t", "x", "--short-circuit", "--json"]) == EXIT_TRUE
        assert json.loads(capsys.readouterr().out)["resolved"] == ["x"]

    def test_config_file(self, tmp_path, capsys):
        """Test loading parser settings."""
        path = tmp_path / "parser.yaml"
        path.write_text("max_depth: 1\n", encoding="utf-8")
        assert main(["--config", str(path), "eval", "((a))", "-t", "a"]) == EXIT_ERROR
        assert "maximum nesting depth of 1" in capsys.readouterr().err

    def test_missing_config_file(self, tmp_path, capsys):
        """Test a config path that does not exist."""
        missing = tmp_path / "missing.yaml"
        assert main(["--config", str(missing), "eval", "a"]) == EXIT_ERROR
        assert "error:" in capsys.readouterr().err


class TestCheckCommand:
    """Tests for 'condparser check'."""

    def test_tautology(self, capsys):
        """Test the analysis summary."""
        assert main(["check", "a || !a"]) == EXIT_TRUE
        assert "Always true" in capsys.readouterr().out

    def test_invalid(self, capsys):
        """Test an invalid expression."""
        assert main(["check", "(a"]) == EXIT_ERROR
        assert "INVALID" in capsys.readouterr().out

    def test_json(self, capsys):
        """Test JSON analysis output."""
        assert main(["check", "a && b", "--json"]) == EXIT_TRUE
        assert json.loads(capsys.readouterr().out)["true_assignments"] == 1

    def test_long_chain(self, capsys):
        """Test a long chain is analysed without error."""
        assert main(["check", " && ".join(["a"] * 3000)]) == EXIT_TRUE
        assert "True for 1 of 2 assignments" in capsys.readouterr().out


class TestFlagsCommand:
    """Tests for 'condparser flags'."""

    def write_flags(self, tmp_path, content):
        path = tmp_path / "flags.yaml"
        path.write_text(content, encoding="utf-8")
        return str(path)

    def test_resolve(self, tmp_path, capsys):
        """Test printing resolved values."""
        path = self.write_flags(
            tmp_path,
            "flags:\n  - name: hud\n    when: debug\n  - name: fog\n    when: '!mobile'\n",
        )
        assert main(["flags", path, "-t", "debug"]) == EXIT_TRUE
        out = capsys.readouterr().out
        assert "hud = True" in out
        assert "fog = True" in out

    def test_resolve_json(self, tmp_path, capsys):
        """Test JSON resolution output."""
        path = self.write_flags(tmp_path, "flags:\n  - name: hud\n    when: debug\n")
        assert main(["flags", path, "--json"]) == EXIT_TRUE
        assert json.loads(capsys.readouterr().out)["values"] == {"hud": False}

    def test_resolve_with_errors(self, tmp_path, capsys):
        """Test invalid rules give an error exit code."""
        path = self.write_flags(tmp_path, "flags:\n  - name: hud\n    when: 'debug ||'\n")
        assert main(["flags", path]) == EXIT_ERROR
        assert "error: hud:" in capsys.readouterr().err

    def test_validate(self, tmp_path, capsys):
        """Test rule validation."""
        path = self.write_flags(tmp_path, "flags:\n  - name: hud\n    when: 'a || !a'\n")
        assert main(["flags", path, "--validate"]) == EXIT_TRUE
        captured = capsys.readouterr()
        assert "always true" in captured.err
        assert "1 flag(s) OK" in captured.out

    def test_invalid_file(self, tmp_path, capsys):
        """Test a malformed flag file."""
        path = self.write_flags(tmp_path, "flags:\n  - name: 9\n")
        assert main(["flags", path]) == EXIT_ERROR
        assert "Invalid flag file" in capsys.readouterr().err


class TestSelftestCommand:
    """Tests for 'condparser selftest'."""

    def test_selftest_passes(self, capsys):
        """Test the built-in scenario table."""
        assert main(["selftest"]) == EXIT_TRUE
        out = capsys.readouterr().out
        assert "Testing: true && false" in out
        assert "All tests passed!" in out


class TestArguments:
    """Tests for argument handling."""

    def test_version(self, capsys):
        """Test --version."""
        assert main(["--version"]) == 0
        assert "condparser" in capsys.readouterr().out

    def test_missing_command(self, capsys):
        """Test that a command is required."""
        assert main([]) == EXIT_ERROR
