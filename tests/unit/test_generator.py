"""Unit tests for feature_gen.generator."""

from pathlib import Path

import pytest
from jinja2 import TemplateError

from feature_gen.converter import GherkinToCrifConverter
from feature_gen.generator import (
    TestGenerator,
    default_template,
    docstring_text,
    output_filename,
    snake_case,
)
from feature_gen.models import FeatureCrif
from feature_gen.parser import parse_feature_string


@pytest.fixture
def crif(sample_feature, account_catalog) -> FeatureCrif:
    document = parse_feature_string(sample_feature)
    return GherkinToCrifConverter(account_catalog).convert(document, "BankAccounts")


@pytest.fixture
def code(crif: FeatureCrif) -> str:
    return TestGenerator().render(default_template(), crif)


class TestDefaultTemplate:
    def test_compiles(self, code: str) -> None:
        compile(code, "<generated>", "exec")

    def test_imports(self, code: str) -> None:
        assert "import pytest\n" in code
        assert "from bank_steps.accounts import *" in code

    def test_class_and_methods(self, code: str) -> None:
        assert "class TestBankAccounts:" in code
        assert "def test_DepositMoney(self):" in code
        assert "def test_RepeatedDeposits(self, amount: str):" in code

    def test_setup_builds_step_objects_and_background(self, code: str) -> None:
        setup = code.split("def _setup(self):")[1].split("# Rule:")[0]
        assert "self.AccountSteps = AccountSteps(self)" in setup
        assert 'self.AccountSteps.i_have_an_account_named("Savings")' in setup

    def test_display_keyword_comment(self, code: str) -> None:
        assert "# And the statement is printed" in code

    def test_step_calls(self, code: str) -> None:
        assert 'self.AccountSteps.i_deposit(100, "Savings")' in code
        assert 'self.AccountSteps.i_deposit(int(amount), "Savings")' in code
        assert "self.TheStatementIsPrinted()" in code

    def test_parametrize(self, code: str) -> None:
        assert '@pytest.mark.parametrize(\n        ["amount"],' in code
        assert '("10",),' in code

    def test_explicit_scenario_skipped(self, code: str) -> None:
        before_audit = code.split("def test_ManualAudit")[0]
        assert before_audit.rstrip().endswith(
            '@pytest.mark.skip(reason="explicit scenario, run on demand")'
        )

    def test_data_table(self, code: str) -> None:
        assert 'table1 = DataTable(\n            ["Name", "Balance"],\n            ["Holiday", "50"]\n        )' in code
        assert "self.AccountSteps.the_following_accounts_exist(table1)" in code

    def test_stub(self, code: str) -> None:
        assert "    def TheStatementIsPrinted(self):" in code
        assert 'raise NotImplementedError("Step not implemented: Then the statement is printed")' in code

    def test_base_class(self, account_catalog) -> None:
        text = "@baseclass:support.Base\nFeature: Based\n  Scenario: S\n    Given x\n"
        crif = GherkinToCrifConverter(account_catalog).convert(parse_feature_string(text), "Based")
        code = TestGenerator().render(default_template(), crif)
        assert "class TestBased(Base):" in code
        assert "from support import *" in code
        compile(code, "<generated>", "exec")

    def test_quotes_in_text(self) -> None:
        text = 'Feature: Q\n  Scenario: S\n    Given a "quoted" value\n'
        crif = GherkinToCrifConverter([]).convert(parse_feature_string(text), "Q")
        code = TestGenerator().render(default_template(), crif)
        compile(code, "<generated>", "exec")

    def test_idempotent(self, crif: FeatureCrif, code: str) -> None:
        assert TestGenerator().render(default_template(), crif) == code


class TestRender:
    def test_custom_template(self, crif: FeatureCrif) -> None:
        template = "{% for rule in rules %}{{ rule.name }};{% endfor %}"
        assert TestGenerator().render(template, crif) == "All scenarios;Imports;"

    def test_undefined_variable_raises(self, crif: FeatureCrif) -> None:
        with pytest.raises(TemplateError):
            TestGenerator().render("{{ no_such_field }}", crif)

    def test_syntax_error_raises(self, crif: FeatureCrif) -> None:
        with pytest.raises(TemplateError):
            TestGenerator().render("{% for %}", crif)

    def test_render_file(self, tmp_path: Path, crif: FeatureCrif) -> None:
        path = tmp_path / "name.j2"
        path.write_text("{{ feature_class }}")
        assert TestGenerator().render_file(path, crif) == "BankAccounts"


class TestAwkwardFeatureText:
    @staticmethod
    def render(text: str) -> str:
        crif = GherkinToCrifConverter(()).convert(parse_feature_string(text), "Awkward")
        return TestGenerator().render(default_template(), crif)

    def test_backslashes_in_remarks(self) -> None:
        code = self.render(
            "Feature: Paths\n"
            "  Scenario: Windows paths\n"
            "    Files live under C:\\Users\\me.\n"
            "    Given nothing\n"
        )
        compile(code, "<generated>", "exec")
        assert "C:\\\\Users\\\\me." in code

    def test_triple_quotes_in_names(self) -> None:
        code = self.render(
            'Feature: Quoting """things"""\n'
            '  Scenario: Shows """raw"""\n'
            "    Given nothing\n"
        )
        compile(code, "<generated>", "exec")

    def test_non_identifier_characters_in_step_text(self) -> None:
        code = self.render(
            "Feature: Bills\n"
            "  Scenario: Split ½ bill\n"
            "    Given I pay ½ of the bill\n"
        )
        compile(code, "<generated>", "exec")
        assert "def IPayOfTheBill(self):" in code
        assert "def test_SplitBill(self):" in code

    def test_docstring_text(self) -> None:
        assert docstring_text('a\\b "c"') == 'a\\\\b \\"c\\"'


class TestNames:
    def test_output_filename(self) -> None:
        assert output_filename("BankImport") == "test_bank_import.py"
        assert output_filename("bank-import") == "test_bank_import.py"
        assert output_filename("---") == "test_feature.py"

    def test_snake_case(self) -> None:
        assert snake_case("HTTPServer2Go") == "httpserver2_go"
        assert snake_case("already_snake") == "already_snake"
