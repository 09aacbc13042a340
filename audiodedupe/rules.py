"""
rules.py

Interactive configuration of the auto-decision policy.
"""

import os

from audiodedupe.i18n import emit, text
from audiodedupe.policies import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_WEIGHTS,
    RULE_NAMES,
    WEIGHT_KEYS,
    OrderedRulePolicy,
    WeightedPolicy,
)
from audiodedupe.prompts import ask_number, ask_text, choose, confirm

# ================= I18N MESSAGE KEYS =================

MSG_RULES_HEADER = "RULES_HEADER"
MSG_RULES_INTRO = "RULES_INTRO"
MSG_RULES_EXISTING = "RULES_EXISTING"
MSG_RULES_ACTION = "RULES_ACTION"
MSG_RULES_USE = "RULES_OPTION_USE"
MSG_RULES_RECONFIGURE = "RULES_OPTION_RECONFIGURE"

MSG_RULES_THRESHOLD = "RULES_PROMPT_THRESHOLD"
MSG_RULES_KIND = "RULES_PROMPT_KIND"
MSG_RULES_KIND_ORDERED = "RULES_KIND_ORDERED"
MSG_RULES_KIND_WEIGHTED = "RULES_KIND_WEIGHTED"
MSG_RULES_ORDER = "RULES_PROMPT_ORDER"
MSG_RULES_ORDER_INVALID = "RULES_ORDER_INVALID"
MSG_RULES_DESTINATION = "RULES_PROMPT_DESTINATION"
MSG_RULES_DESTINATION_NONE = "RULES_DESTINATION_NONE"
MSG_RULES_DESTINATION_CUSTOM = "RULES_DESTINATION_CUSTOM"
MSG_RULES_DESTINATION_ENTER = "RULES_PROMPT_DESTINATION_PATH"
MSG_RULES_REVEAL = "RULES_PROMPT_REVEAL"
MSG_RULES_DIFFERENCE = "RULES_PROMPT_DIFFERENCE"
MSG_RULES_WEIGHT = "RULES_PROMPT_WEIGHT"
MSG_RULES_WEIGHTS_SUM = "RULES_WEIGHTS_SUM"
MSG_RULES_PRIORITY_CONFIRM = "RULES_PROMPT_PRIORITY_CONFIRM"
MSG_RULES_PRIORITY_PICK = "RULES_PROMPT_PRIORITY_PICK"
MSG_RULES_PRIORITY_DONE = "RULES_PRIORITY_DONE"

MSG_RULES_SUMMARY_KIND = "RULES_SUMMARY_KIND"
MSG_RULES_SUMMARY_THRESHOLD = "RULES_SUMMARY_THRESHOLD"
MSG_RULES_SUMMARY_ORDER = "RULES_SUMMARY_ORDER"
MSG_RULES_SUMMARY_DESTINATION = "RULES_SUMMARY_DESTINATION"
MSG_RULES_SUMMARY_DIFFERENCE = "RULES_SUMMARY_DIFFERENCE"
MSG_RULES_SUMMARY_WEIGHTS = "RULES_SUMMARY_WEIGHTS"
MSG_RULES_SUMMARY_PRIORITY = "RULES_SUMMARY_PRIORITY"
MSG_RULES_SUMMARY_REVEAL = "RULES_SUMMARY_REVEAL"

# ====================================================

MAX_DIRECTORIES = 20


def extract_unique_directories(store, limit=MAX_DIRECTORIES):
    """
    Top-level directories holding scanned files: sorted parent
    directories with nested ones dropped, at most `limit`.
    """
    dirs = sorted({os.path.dirname(path) for path in store})
    top_level = []
    for d in dirs:
        if any(d == parent or d.startswith(parent.rstrip("/") + "/") for parent in top_level):
            continue
        top_level.append(d)
    return top_level[:limit]


def describe_policy(policy):
    reveal = policy.reveal_metadata
    if isinstance(policy, WeightedPolicy):
        emit(MSG_RULES_SUMMARY_KIND, kind=text(MSG_RULES_KIND_WEIGHTED))
        emit(MSG_RULES_SUMMARY_THRESHOLD, value=policy.confidence_threshold)
        emit(MSG_RULES_SUMMARY_DIFFERENCE, value=policy.score_difference_threshold)
        emit(
            MSG_RULES_SUMMARY_WEIGHTS,
            value=", ".join(f"{k}={policy.weights[k]}" for k in WEIGHT_KEYS),
        )
        emit(MSG_RULES_SUMMARY_PRIORITY, count=len(policy.path_priority))
    else:
        emit(MSG_RULES_SUMMARY_KIND, kind=text(MSG_RULES_KIND_ORDERED))
        emit(MSG_RULES_SUMMARY_THRESHOLD, value=policy.confidence_threshold)
        emit(MSG_RULES_SUMMARY_ORDER, value=" > ".join(policy.rule_order))
        emit(MSG_RULES_SUMMARY_DESTINATION, value=policy.destination_dir or "-")
    emit(MSG_RULES_SUMMARY_REVEAL, value="yes" if reveal else "no")


def prompt_rules_action(ask, policy):
    """'use' or 'reconfigure'."""
    emit(MSG_RULES_EXISTING)
    describe_policy(policy)
    return choose(ask, MSG_RULES_ACTION, [
        (text(MSG_RULES_USE), "use"),
        (text(MSG_RULES_RECONFIGURE), "reconfigure"),
    ])


def parse_rule_order(raw):
    order = tuple(r.strip().lower() for r in raw.replace(">", ",").split(",") if r.strip())
    if not order or any(r not in RULE_NAMES for r in order) or len(set(order)) != len(order):
        return None
    return order


def prompt_rule_order(ask):
    default = ",".join(RULE_NAMES)
    while True:
        order = parse_rule_order(ask_text(ask, MSG_RULES_ORDER, default))
        if order:
            return order
        emit(MSG_RULES_ORDER_INVALID, names=", ".join(RULE_NAMES))


def prompt_destination(ask, directories):
    options = [(text(MSG_RULES_DESTINATION_NONE), "")]
    options += [(d, d) for d in directories]
    options.append((text(MSG_RULES_DESTINATION_CUSTOM), None))

    selected = choose(ask, MSG_RULES_DESTINATION, options)
    if selected is None:
        return os.path.expanduser(ask_text(ask, MSG_RULES_DESTINATION_ENTER))
    return selected


def prompt_weights(ask):
    while True:
        weights = {}
        for key in WEIGHT_KEYS:
            weights[key] = ask_number(ask, MSG_RULES_WEIGHT, DEFAULT_WEIGHTS[key], 0, 100, name=key)
        if abs(sum(weights.values()) - 100) < 1e-6:
            return weights
        emit(MSG_RULES_WEIGHTS_SUM, total=sum(weights.values()))


def prompt_path_priority(ask, directories):
    """Directories in preference order; the first pick ranks highest."""
    remaining = list(directories)
    chosen = []
    while remaining:
        options = [(d, d) for d in remaining] + [(text(MSG_RULES_PRIORITY_DONE), None)]
        selected = choose(ask, MSG_RULES_PRIORITY_PICK, options, rank=len(chosen) + 1)
        if selected is None:
            break
        chosen.append(selected)
        remaining.remove(selected)
    return tuple(chosen)


def prompt_for_rules(ask, directories):
    emit(MSG_RULES_HEADER)
    emit(MSG_RULES_INTRO)

    threshold = ask_number(ask, MSG_RULES_THRESHOLD, DEFAULT_CONFIDENCE_THRESHOLD, 0, 100)
    kind = choose(ask, MSG_RULES_KIND, [
        (text(MSG_RULES_KIND_ORDERED), "ordered"),
        (text(MSG_RULES_KIND_WEIGHTED), "weighted"),
    ])

    if kind == "weighted":
        difference = ask_number(ask, MSG_RULES_DIFFERENCE, 10, 0, 100)
        weights = prompt_weights(ask)
        priority = ()
        if directories and confirm(ask, MSG_RULES_PRIORITY_CONFIRM, default=False):
            priority = prompt_path_priority(ask, directories)
        reveal = confirm(ask, MSG_RULES_REVEAL, default=True)
        policy = WeightedPolicy(
            confidence_threshold=threshold,
            score_difference_threshold=difference,
            weights=weights,
            path_priority=priority,
            reveal_metadata=reveal,
        )
    else:
        order = prompt_rule_order(ask)
        destination = prompt_destination(ask, directories)
        reveal = confirm(ask, MSG_RULES_REVEAL, default=True)
        policy = OrderedRulePolicy(
            confidence_threshold=threshold,
            rule_order=order,
            destination_dir=destination,
            reveal_metadata=reveal,
        )

    describe_policy(policy)
    return policy
