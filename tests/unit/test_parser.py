"""Unit tests for feature_gen.parser."""

from pathlib import Path

import pytest

from feature_gen.parser import FeatureParseError, parse_feature_file, parse_feature_string


class TestParseFeatureString:
    def test_feature_tree(self, sample_feature: str) -> None:
        doc = parse_feature_string(sample_feature)
        feature = doc["feature"]
        assert feature["name"] == "Bank accounts"
        assert [t["name"] for t in feature["tags"]] == ["@namespace:banking"]
        kinds = [next(iter(child)) for child in feature["children"]]
        assert kinds == ["background", "scenario", "scenario", "scenario", "rule"]

    def test_step_fields(self, sample_feature: str) -> None:
        doc = parse_feature_string(sample_feature)
        scenario = doc["feature"]["children"][1]["scenario"]
        step = scenario["steps"][0]
        assert step["keyword"].strip() == "When"
        assert step["text"] == "I deposit 100 into Savings"

    def test_data_table(self, sample_feature: str) -> None:
        doc = parse_feature_string(sample_feature)
        rule = doc["feature"]["children"][4]["rule"]
        step = rule["children"][0]["scenario"]["steps"][0]
        rows = [[c["value"] for c in r["cells"]] for r in step["dataTable"]["rows"]]
        assert rows == [["Name", "Balance"], ["Holiday", "50"]]

    def test_empty_document(self) -> None:
        assert "feature" not in parse_feature_string("")

    def test_invalid_gherkin(self) -> None:
        with pytest.raises(FeatureParseError) as exc_info:
            parse_feature_string(
                "Feature: x\n  Scenario: y\n    Given a\n      | a | b |\n      | c |\n",
                "x.feature",
            )
        assert exc_info.value.source_file == "x.feature"
        assert exc_info.value.message

    def test_missing_feature_keyword(self) -> None:
        with pytest.raises(FeatureParseError):
            parse_feature_string("Scenario: no feature\n  Given a\n")


class TestParseFeatureFile:
    def test_reads_file(self, tmp_path: Path, sample_feature: str) -> None:
        path = tmp_path / "bank.feature"
        path.write_text(sample_feature)
        assert parse_feature_file(path)["feature"]["name"] == "Bank accounts"

    def test_error_names_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.feature"
        path.write_text("not gherkin at all\n")
        with pytest.raises(FeatureParseError) as exc_info:
            parse_feature_file(path)
        assert exc_info.value.source_file == str(path)
