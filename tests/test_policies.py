"""Tests for rule policies and the settings document."""

import json

import pytest

from audiodedupe.config import (
    DataPaths,
    expand_path,
    load_config,
    load_rules,
    save_rules,
)
from audiodedupe.policies import (
    OrderedRulePolicy,
    WeightedPolicy,
    policy_from_dict,
    policy_to_dict,
)


class TestPolicyFromDict:
    def test_ordered(self):
        policy = policy_from_dict({
            "confidenceThreshold": 80,
            "ruleOrder": ["bitrate", "lossless"],
            "destinationDir": "/library",
        })

        assert policy == OrderedRulePolicy(
            confidence_threshold=80,
            rule_order=("bitrate", "lossless"),
            destination_dir="/library",
        )

    def test_legacy_flags(self):
        policy = policy_from_dict({"preferLossless": False, "preferHigherBitrate": True})

        assert isinstance(policy, OrderedRulePolicy)
        assert policy.rule_order == ("bitrate", "metadata")

    def test_weighted_detected_from_weights(self):
        policy = policy_from_dict({
            "weights": {"lossless": 50, "bitrate": 50},
            "pathPriority": ["/a"],
        })

        assert isinstance(policy, WeightedPolicy)
        assert policy.weights == {"lossless": 50, "bitrate": 50, "pathPriority": 0, "metadataQuality": 0}
        assert policy.path_priority == ("/a",)

    @pytest.mark.parametrize("data", [
        {"confidenceThreshold": 120},
        {"ruleOrder": ["lossless", "loudness"]},
        {"ruleOrder": ["lossless", "lossless"]},
        {"weights": {"lossless": 60, "bitrate": 60}},
        {"weights": {"lossless": 110, "bitrate": -10}},
        {"weights": [25, 25, 25, 25]},
        {"policy": "random"},
        "lossless",
    ])
    def test_invalid(self, data):
        with pytest.raises(RuntimeError) as info:
            policy_from_dict(data)
        assert info.value.args[0]["key"] == "RULES_INVALID"

    @pytest.mark.parametrize("policy", [
        OrderedRulePolicy(rule_order=("metadata",), destination_dir="/d", reveal_metadata=False),
        WeightedPolicy(score_difference_threshold=5, path_priority=("/x", "/y")),
    ])
    def test_to_dict_round_trip(self, policy):
        assert policy_from_dict(policy_to_dict(policy)) == policy


class TestSettingsDocument:
    def test_missing_document_stops(self, tmp_path):
        with pytest.raises(SystemExit) as info:
            load_config(tmp_path / "config.json")
        assert info.value.code["key"] == "CONFIG_NOT_FOUND"

    def test_invalid_document_stops(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{", encoding="utf-8")

        with pytest.raises(SystemExit) as info:
            load_config(path)
        assert info.value.code["key"] == "CONFIG_INVALID"

    def test_defaults_are_filled(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"scanPaths": ["/music"], "durationToleranceSeconds": 3}), encoding="utf-8")

        cfg = load_config(path)

        assert cfg["scanPaths"] == ["/music"]
        assert cfg["durationToleranceSeconds"] == 3
        assert cfg["duplicateScoreThreshold"] == 40
        assert load_rules(cfg) is None

    def test_save_rules_keeps_other_settings(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"scanPaths": ["/music"], "language": "es"}), encoding="utf-8")

        save_rules(OrderedRulePolicy(), path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["scanPaths"] == ["/music"]
        assert data["language"] == "es"
        assert load_rules(data) == OrderedRulePolicy()


def test_expand_path(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert expand_path("~") == str(tmp_path)
    assert expand_path("~/Music") == f"{tmp_path}/Music"
    assert expand_path("/abs") == "/abs"


def test_trash_override(monkeypatch, tmp_path):
    paths = DataPaths(root=tmp_path)

    monkeypatch.delenv("DEDUPE_TRASH_DIR", raising=False)
    assert paths.trash == tmp_path / "to_trash"

    monkeypatch.setenv("DEDUPE_TRASH_DIR", str(tmp_path / "bin"))
    assert paths.trash == (tmp_path / "bin").resolve()
