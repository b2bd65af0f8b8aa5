"""
Tests for condition-gated configuration flags.
"""

import pytest
from pydantic import ValidationError

from backend.condparser.config import ConfigError
from backend.condparser.flags import (
    FlagDefinition,
    FlagEngine,
    FlagRule,
    FlagSet,
    load_flags,
)

FLAGS_YAML = """
parser:
  max_depth: 32
conditions:
  debug: false
  desktop: true
flags:
  - name: validation_layers
    description: Enable graphics API validation
    when: "debug && !mobile"
  - name: texture_quality
    default: medium
    rules:
      - when: "console || highend"
        value: high
      - when: mobile
        value: low
  - name: vsync
    default: true
    rules:
      - when: "benchmark"
        value: false
"""


@pytest.fixture
def flag_set():
    return FlagSet.from_yaml(FLAGS_YAML)


class TestFlagModels:
    """Tests for flag definitions."""

    def test_load(self, flag_set):
        """Test loading a flag file."""
        assert [f.name for f in flag_set.flags] == ["validation_layers", "texture_quality", "vsync"]
        assert flag_set.parser.max_depth == 32
        assert flag_set.conditions == {"debug": False, "desktop": True}

    def test_when_shorthand(self):
        """Test that 'when' expands into a rule enabling the flag."""
        flag = FlagDefinition(name="hud", when="debug")
        assert flag.rules == [FlagRule(when="debug", value=True)]
        assert flag.default is False

    def test_when_shorthand_goes_first(self):
        """Test that the shorthand rule is tried before explicit rules."""
        flag = FlagDefinition(name="hud", when="a", rules=[{"when": "b", "value": 2}])
        assert [r.when for r in flag.rules] == ["a", "b"]

    def test_invalid_flag_name(self):
        """Test flag name validation."""
        with pytest.raises(ValidationError) as exc_info:
            FlagDefinition(name="1st-flag")
        assert "must start with a letter" in str(exc_info.value)

    def test_empty_condition_rejected(self):
        """Test that rules need a condition."""
        with pytest.raises(ValidationError):
            FlagRule(when="")

    def test_duplicate_names(self):
        """Test duplicate flag names."""
        content = "flags:\n  - name: a\n  - name: a\n"
        with pytest.raises(ConfigError) as exc_info:
            FlagSet.from_yaml(content)
        assert "Duplicate flag name" in str(exc_info.value)

    def test_unknown_keys_rejected(self):
        """Test that unexpected keys are reported."""
        with pytest.raises(ConfigError):
            FlagSet.from_yaml("flags:\n  - name: a\n    whenn: b\n")

    def test_invalid_parser_settings(self):
        """Test that nested parser settings are validated."""
        with pytest.raises(ConfigError):
            FlagSet.from_yaml("parser:\n  max_depth: 0\n")

    def test_invalid_yaml(self):
        """Test malformed YAML."""
        with pytest.raises(ConfigError):
            FlagSet.from_yaml("flags: [\n")

    def test_top_level_must_be_mapping(self):
        """Test a list document."""
        with pytest.raises(ConfigError):
            FlagSet.from_yaml("- a\n")

    def test_empty_document(self):
        """Test an empty flag file."""
        assert FlagSet.from_yaml("").flags == []

    def test_get_flag(self, flag_set):
        """Test looking up a flag by name."""
        assert flag_set.get_flag("vsync").default is True
        assert flag_set.get_flag("missing") is None


class TestFlagEngine:
    """Tests for flag resolution."""

    def test_defaults_apply(self, flag_set):
        """Test resolution with only the declared conditions."""
        values = FlagEngine(flag_set).resolve().values
        assert values == {
            "validation_layers": False,
            "texture_quality": "medium",
            "vsync": True,
        }

    def test_mapping_overrides_defaults(self, flag_set):
        """Test that supplied conditions override declared ones."""
        values = FlagEngine(flag_set).resolve({"debug": True}).values
        assert values["validation_layers"] is True

    def test_collection_of_true_names(self, flag_set):
        """Test a set of active conditions."""
        values = FlagEngine(flag_set).resolve({"debug", "mobile", "benchmark"}).values
        assert values["validation_layers"] is False
        assert values["texture_quality"] == "low"
        assert values["vsync"] is False

    def test_collection_keeps_true_defaults(self):
        """Test that declared true conditions remain true."""
        flag_set = FlagSet.from_yaml(
            "conditions:\n  desktop: true\nflags:\n  - name: mouse\n    when: desktop\n"
        )
        assert FlagEngine(flag_set).resolve(["debug"]).values["mouse"] is True

    def test_callable_conditions(self, flag_set):
        """Test a resolver callable."""
        values = FlagEngine(flag_set).resolve(lambda name: name == "console").values
        assert values["texture_quality"] == "high"

    def test_first_match_wins(self, flag_set):
        """Test that earlier rules take priority."""
        result = FlagEngine(flag_set).resolve({"highend": True, "mobile": True}).results["texture_quality"]
        assert result.value == "high"
        assert result.matched_rule == 0
        assert result.from_default is False

    def test_default_has_no_matched_rule(self, flag_set):
        """Test results that fall through to the default."""
        result = FlagEngine(flag_set).resolve().results["texture_quality"]
        assert result.from_default is True

    def test_invalid_rule_is_skipped(self):
        """Test that malformed conditions never match."""
        content = (
            "flags:\n"
            "  - name: shadows\n"
            "    default: low\n"
            "    rules:\n"
            "      - when: 'highend &&'\n"
            "        value: ultra\n"
            "      - when: highend\n"
            "        value: high\n"
        )
        resolution = FlagEngine(FlagSet.from_yaml(content)).resolve({"highend"})
        assert resolution.values["shadows"] == "high"
        assert resolution.results["shadows"].matched_rule == 1
        assert resolution.valid is False
        assert resolution.errors == ["shadows: Error: expected identifier or '('"]

    def test_to_dict(self, flag_set):
        """Test conversion to dictionary."""
        data = FlagEngine(flag_set).resolve().to_dict()
        assert data["valid"] is True
        assert data["values"]["vsync"] is True
        assert len(data["flags"]) == 3

    def test_string_conditions_rejected(self, flag_set):
        """Test that a bare string is not taken as a collection."""
        with pytest.raises(TypeError):
            FlagEngine(flag_set).resolve("debug")

    def test_load_flags(self, tmp_path):
        """Test the file helper."""
        path = tmp_path / "flags.yaml"
        path.write_text(FLAGS_YAML, encoding="utf-8")
        assert load_flags(path, {"console"})["texture_quality"] == "high"


class TestFlagValidation:
    """Tests for rule validation."""

    def test_clean_flag_set(self, flag_set):
        """Test a flag set with no issues."""
        assert FlagEngine(flag_set).validate() == []

    def test_reports_problems(self):
        """Test syntax errors, constant rules and unreachable rules."""
        content = (
            "flags:\n"
            "  - name: broken\n"
            "    when: 'a || (b'\n"
            "  - name: constant\n"
            "    rules:\n"
            "      - when: 'a && !a'\n"
            "      - when: 'b || !b'\n"
            "      - when: c\n"
        )
        issues = FlagEngine(FlagSet.from_yaml(content)).validate()
        assert [(i.flag, i.rule, i.severity) for i in issues] == [
            ("broken", 0, "error"),
            ("constant", 0, "warning"),
            ("constant", 1, "warning"),
            ("constant", 2, "warning"),
        ]
        assert issues[0].message == "Error: expected ')', found: END"
        assert issues[1].message == "condition is always false"
        assert issues[2].message == "condition is always true"
        assert "unreachable" in str(issues[3])

    def test_large_conditions(self):
        """Test long chains and deep nesting in rule conditions."""
        deep = "(" * 100 + "a" + ")" * 100
        flag_set = FlagSet(flags=[
            FlagDefinition(name="chain", rules=[FlagRule(when=" && ".join(["a"] * 3000))]),
            FlagDefinition(name="deep", rules=[FlagRule(when=deep)]),
        ])
        engine = FlagEngine(flag_set)
        assert engine.validate() == []
        assert engine.resolve({"a"}).values == {"chain": True, "deep": True}

    def test_nesting_beyond_limit(self):
        """Test that too-deep conditions are reported as errors."""
        deep = "(" * 101 + "a" + ")" * 101
        flag_set = FlagSet(flags=[FlagDefinition(name="deep", rules=[FlagRule(when=deep)])])
        issues = FlagEngine(flag_set).validate()
        assert [(i.flag, i.rule, i.severity) for i in issues] == [("deep", 0, "error")]
        assert "maximum nesting depth" in issues[0].message
