"""Shared test fixtures for feature-gen."""

from pathlib import Path

import pytest

from feature_gen.config import install_default_template, save_config
from feature_gen.models import ProjectConfig, StepDefinition, StepParameter

STEPS_SOURCE = '''\
from feature_gen.runtime import DataTable, given, then, when


class AccountSteps:
    def __init__(self, context):
        self.context = context
        self.accounts = {}

    @given("I have an account named {name}")
    def i_have_an_account_named(self, name: str) -> None:
        self.accounts[name] = 0

    @when("I deposit {amount} into {name}")
    def i_deposit(self, amount: int, name: str) -> None:
        self.accounts[name] += amount

    @then("the balance of {name} is {amount}")
    def the_balance_is(self, name: str, amount: int) -> None:
        assert self.accounts[name] == amount

    @given("the following accounts exist")
    def the_following_accounts_exist(self, table: DataTable) -> None:
        for row in table:
            self.accounts[row["Name"]] = int(row["Balance"])
'''

FEATURE_SOURCE = """\
@namespace:banking
Feature: Bank accounts
  Customers keep money in accounts.

  Background:
    Given I have an account named Savings

  Scenario: Deposit money
    When I deposit 100 into Savings
    Then the balance of Savings is 100

  Scenario Outline: Repeated deposits
    When I deposit <amount> into Savings
    Then the balance of Savings is <amount>

    Examples:
      | amount |
      | 10     |
      | 25     |

  @explicit
  Scenario: Manual audit
    Then the balance of Savings is 0

  Rule: Imports
    Scenario: Import accounts
      Given the following accounts exist
        | Name    | Balance |
        | Holiday | 50      |
      Then the balance of Holiday is 50
      And the statement is printed
"""


@pytest.fixture
def steps_source() -> str:
    """Return Python source of a step class."""
    return STEPS_SOURCE


@pytest.fixture
def sample_feature() -> str:
    """Return a feature exercising background, outline, explicit and rule."""
    return FEATURE_SOURCE


@pytest.fixture
def account_catalog() -> tuple[StepDefinition, ...]:
    """Return the catalog that STEPS_SOURCE produces."""
    def step(keyword, pattern, method, *params):
        return StepDefinition(
            keyword=keyword,
            pattern=pattern,
            owner="AccountSteps",
            namespace="bank_steps.accounts",
            method=method,
            parameters=tuple(StepParameter(type_name=t, name=n) for t, n in params),
        )

    return (
        step("Given", "I have an account named {name}", "i_have_an_account_named",
             ("str", "name")),
        step("When", "I deposit {amount} into {name}", "i_deposit",
             ("int", "amount"), ("str", "name")),
        step("Then", "the balance of {name} is {amount}", "the_balance_is",
             ("str", "name"), ("int", "amount")),
        step("Given", "the following accounts exist", "the_following_accounts_exist",
             ("DataTable", "table")),
    )


@pytest.fixture
def initialized_project(tmp_path: Path) -> Path:
    """Create a project with config, template, step sources and one feature."""
    config = ProjectConfig(steps_dirs=["bank_steps"])
    save_config(config, tmp_path)
    install_default_template(config, tmp_path)

    steps_dir = tmp_path / "bank_steps"
    steps_dir.mkdir()
    (steps_dir / "__init__.py").write_text("")
    (steps_dir / "accounts.py").write_text(STEPS_SOURCE)

    features_dir = tmp_path / "features"
    features_dir.mkdir()
    (features_dir / "BankAccounts.feature").write_text(FEATURE_SOURCE)
    return tmp_path
