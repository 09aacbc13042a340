"""
policies.py

Auto-decision rule configuration.

The `duplicateRules` settings entry comes in two incompatible shapes. It
is parsed once, at load time, into one of two policy types:

- OrderedRulePolicy: try rules in order (lossless, bitrate, metadata);
  the first rule that separates the best file from the runner-up wins.
- WeightedPolicy: weighted multi-factor score per file; the best file
  must lead the runner-up by `score_difference_threshold`.

The oldest shape (`preferLossless` / `preferHigherBitrate` flags) is
read as an ordered policy.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple, Union

from audiodedupe.i18n import msg

# ================= I18N MESSAGE KEYS =================

MSG_RULES_INVALID = "RULES_INVALID"

# ====================================================

RULE_NAMES = ("lossless", "bitrate", "metadata")
WEIGHT_KEYS = ("lossless", "bitrate", "pathPriority", "metadataQuality")

DEFAULT_CONFIDENCE_THRESHOLD = 70
DEFAULT_WEIGHTS = {
    "lossless": 40,
    "bitrate": 30,
    "pathPriority": 20,
    "metadataQuality": 10,
}


@dataclass(frozen=True)
class OrderedRulePolicy:
    confidence_threshold: int = DEFAULT_CONFIDENCE_THRESHOLD
    rule_order: Tuple[str, ...] = RULE_NAMES
    destination_dir: str = ""
    reveal_metadata: bool = True

    kind = "ordered"


@dataclass(frozen=True)
class WeightedPolicy:
    confidence_threshold: int = DEFAULT_CONFIDENCE_THRESHOLD
    score_difference_threshold: float = 10
    weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    path_priority: Tuple[str, ...] = ()
    reveal_metadata: bool = True

    kind = "weighted"


RuleConfiguration = Union[OrderedRulePolicy, WeightedPolicy]


def _invalid(reason, **params):
    return RuntimeError(msg(MSG_RULES_INVALID, reason=reason, **params))


def _threshold(data):
    value = data.get("confidenceThreshold", DEFAULT_CONFIDENCE_THRESHOLD)
    if not isinstance(value, (int, float)) or not 0 <= value <= 100:
        raise _invalid("confidenceThreshold", value=value)
    return value


def _rule_order(data):
    if "ruleOrder" in data:
        order = tuple(data["ruleOrder"])
    else:
        # Legacy flags: lossless and bitrate preferences, metadata last.
        order = []
        if data.get("preferLossless", True):
            order.append("lossless")
        if data.get("preferHigherBitrate", True):
            order.append("bitrate")
        order.append("metadata")
        order = tuple(order)

    unknown = [r for r in order if r not in RULE_NAMES]
    if unknown:
        raise _invalid("ruleOrder", value=unknown)
    if len(set(order)) != len(order):
        raise _invalid("ruleOrder", value=list(order))
    return order


def _weights(data):
    raw = data.get("weights", DEFAULT_WEIGHTS)
    if not isinstance(raw, dict):
        raise _invalid("weights", value=raw)
    weights = {}
    for key in WEIGHT_KEYS:
        value = raw.get(key, 0)
        if not isinstance(value, (int, float)) or value < 0:
            raise _invalid("weights", value=raw)
        weights[key] = value
    if abs(sum(weights.values()) - 100) > 1e-6:
        raise _invalid("weights", value=raw)
    return weights


def policy_kind(data):
    kind = data.get("policy")
    if kind:
        if kind not in ("ordered", "weighted"):
            raise _invalid("policy", value=kind)
        return kind
    if "weights" in data or "scoreDifferenceThreshold" in data:
        return "weighted"
    return "ordered"


def policy_from_dict(data) -> RuleConfiguration:
    if not isinstance(data, dict):
        raise _invalid("duplicateRules", value=data)

    reveal = bool(data.get("revealMetadata", True))

    if policy_kind(data) == "weighted":
        diff = data.get("scoreDifferenceThreshold", 10)
        if not isinstance(diff, (int, float)) or diff < 0:
            raise _invalid("scoreDifferenceThreshold", value=diff)
        return WeightedPolicy(
            confidence_threshold=_threshold(data),
            score_difference_threshold=diff,
            weights=_weights(data),
            path_priority=tuple(data.get("pathPriority", [])),
            reveal_metadata=reveal,
        )

    return OrderedRulePolicy(
        confidence_threshold=_threshold(data),
        rule_order=_rule_order(data),
        destination_dir=data.get("destinationDir") or "",
        reveal_metadata=reveal,
    )


def policy_to_dict(policy: RuleConfiguration):
    if isinstance(policy, WeightedPolicy):
        return {
            "policy": "weighted",
            "confidenceThreshold": policy.confidence_threshold,
            "scoreDifferenceThreshold": policy.score_difference_threshold,
            "weights": dict(policy.weights),
            "pathPriority": list(policy.path_priority),
            "revealMetadata": policy.reveal_metadata,
        }
    return {
        "policy": "ordered",
        "confidenceThreshold": policy.confidence_threshold,
        "ruleOrder": list(policy.rule_order),
        "destinationDir": policy.destination_dir,
        "revealMetadata": policy.reveal_metadata,
    }
