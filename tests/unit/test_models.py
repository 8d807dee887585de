"""Unit tests for feature_gen.models."""

import pytest

from feature_gen.models import (
    BackgroundCrif,
    Diagnostic,
    FeatureCrif,
    GenerationReport,
    ProjectConfig,
    RuleCrif,
    ScenarioCrif,
    Severity,
    StepCrif,
    StepDefinition,
    StepParameter,
)


class TestStepDefinition:
    def test_valid_keywords(self) -> None:
        for keyword in ("Given", "When", "Then"):
            d = StepDefinition(keyword=keyword, pattern="p", owner="O", namespace="n", method="m")
            assert d.keyword == keyword

    def test_invalid_keyword(self) -> None:
        with pytest.raises(ValueError, match="Invalid step keyword"):
            StepDefinition(keyword="And", pattern="p", owner="O", namespace="n", method="m")

    def test_is_hashable(self) -> None:
        d = StepDefinition(keyword="Given", pattern="p", owner="O", namespace="n", method="m")
        assert d in {d}

    def test_to_dict(self) -> None:
        d = StepDefinition(
            keyword="When",
            pattern="I pay {amount}",
            owner="PaymentSteps",
            namespace="steps.payments",
            method="i_pay",
            parameters=(StepParameter(type_name="int", name="amount"),),
        )
        assert d.to_dict() == {
            "keyword": "When",
            "pattern": "I pay {amount}",
            "owner": "PaymentSteps",
            "namespace": "steps.payments",
            "method": "i_pay",
            "parameters": [{"type": "int", "name": "amount"}],
        }


class TestStepCrif:
    def test_defaults_to_stub(self) -> None:
        step = StepCrif(keyword="Given", text="something")
        assert step.is_stub
        assert step.to_dict()["data_table"] is None

    def test_matched_step(self) -> None:
        step = StepCrif(keyword="Given", text="something", owner="Steps", method="m")
        assert not step.is_stub


class TestFeatureCrif:
    def test_all_steps_in_order(self) -> None:
        crif = FeatureCrif(
            background=BackgroundCrif(steps=[StepCrif(keyword="Given", text="a")]),
            rules=[
                RuleCrif(name="r", scenarios=[
                    ScenarioCrif(name="s", method="S", steps=[StepCrif(keyword="When", text="b")]),
                ]),
            ],
        )
        assert [s.text for s in crif.all_steps()] == ["a", "b"]

    def test_to_dict_without_background(self) -> None:
        data = FeatureCrif(feature_name="F").to_dict()
        assert data["background"] is None
        assert data["rules"] == []
        assert data["feature_name"] == "F"


class TestDiagnostic:
    def test_str_with_source(self) -> None:
        d = Diagnostic(code="FG003", severity=Severity.ERROR, message="bad", source_file="a.feature")
        assert str(d) == "a.feature: error FG003: bad"

    def test_str_without_source(self) -> None:
        d = Diagnostic(code="FG001", severity=Severity.ERROR, message="no template")
        assert str(d) == "error FG001: no template"


class TestGenerationReport:
    def test_empty_is_success(self) -> None:
        assert GenerationReport().is_success

    def test_warnings_do_not_fail(self) -> None:
        report = GenerationReport(diagnostics=[
            Diagnostic(code="FG004", severity=Severity.WARNING, message="stubs"),
        ])
        assert report.is_success
        assert len(report.warnings) == 1
        assert report.errors == []

    def test_errors_fail(self) -> None:
        report = GenerationReport(diagnostics=[
            Diagnostic(code="FG002", severity=Severity.ERROR, message="boom"),
        ])
        assert not report.is_success


class TestProjectConfig:
    def test_defaults(self) -> None:
        config = ProjectConfig()
        assert config.features_dir == "features"
        assert config.steps_dirs == ["tests/steps"]
        assert config.output_dir == "tests/generated"
        assert config.template is None
        assert config.emit_crif is False

    def test_steps_dirs_not_shared(self) -> None:
        a, b = ProjectConfig(), ProjectConfig()
        a.steps_dirs.append("more")
        assert b.steps_dirs == ["tests/steps"]
