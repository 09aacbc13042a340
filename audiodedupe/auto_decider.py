"""
auto_decider.py

Rule-based decisions for duplicate groups.

Groups are walked in the order given (highest confidence first). Each
group is either decided automatically, handed to the metadata merge
review (tie decisions whose tags differ), queued for manual review, or
skipped because one of its files is already covered by a decision.

The skip rule matters because grouping is transitive and approximate:
without it a file kept in one group could be deleted through another,
overlapping group decided later in the same pass.

Decisions are deterministic: nothing depends on set or dict iteration
order, and every tie falls back to the group's member order.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from audiodedupe.i18n import emit, text, warn
from audiodedupe.metadata import is_under, metadata_count
from audiodedupe.models import TAG_FIELDS, AudioRecord, Decision, DuplicateGroup
from audiodedupe.policies import WeightedPolicy

logger = logging.getLogger(__name__)

# ================= I18N MESSAGE KEYS =================

MSG_MISSING_MEMBER = "AUTO_MISSING_MEMBER"
MSG_REASON_NO_METADATA = "AUTO_REASON_NO_METADATA"
MSG_REASON_LOW_CONFIDENCE = "AUTO_REASON_LOW_CONFIDENCE"
MSG_REASON_NO_SEPARATION = "AUTO_REASON_NO_SEPARATION"
MSG_REASON_DECIDED = "AUTO_REASON_DECIDED"

MSG_SUMMARY_AUTO = "AUTO_SUMMARY_AUTO"
MSG_SUMMARY_IN_PLACE = "AUTO_SUMMARY_IN_PLACE"
MSG_SUMMARY_TO_COPY = "AUTO_SUMMARY_TO_COPY"
MSG_SUMMARY_METADATA = "AUTO_SUMMARY_METADATA"
MSG_SUMMARY_MANUAL = "AUTO_SUMMARY_MANUAL"
MSG_SUMMARY_SKIPPED = "AUTO_SUMMARY_SKIPPED"

# ====================================================


@dataclass
class AutoDecisionResult:
    auto_decisions: List[Decision] = field(default_factory=list)
    manual_groups: List[DuplicateGroup] = field(default_factory=list)
    metadata_review_decisions: List[Decision] = field(default_factory=list)
    skipped_groups: List[DuplicateGroup] = field(default_factory=list)

    @property
    def decisions(self):
        return self.auto_decisions + self.metadata_review_decisions


# -------------------- rule comparators --------------------
# Sort keys: a smaller key is a better file.

def lossless_key(record: AudioRecord):
    return 0 if record.lossless else 1


def bitrate_key(record: AudioRecord):
    return -(record.bitrate or 0)


def metadata_key(record: AudioRecord):
    return -metadata_count(record)


RULE_KEYS = {
    "lossless": lossless_key,
    "bitrate": bitrate_key,
    "metadata": metadata_key,
}


def apply_rule(rule, records):
    """
    Return the winner when `rule` strictly separates the best file from
    the runner-up, otherwise None.
    """
    key = RULE_KEYS[rule]
    ranked = sorted(records, key=key)
    if key(ranked[0]) < key(ranked[1]):
        return ranked[0]
    return None


def find_best_file(records, rule_order, destination_dir):
    for rule in rule_order:
        winner = apply_rule(rule, records)
        if winner is not None:
            return winner, rule

    for record in records:
        if is_under(record.path, destination_dir):
            return record, "tie"

    return records[0], "tie"


# -------------------- weighted scoring --------------------

def path_priority_fraction(path, priorities):
    """1.0 for the first listed directory, falling linearly; 0 if unlisted."""
    total = len(priorities)
    for rank, directory in enumerate(priorities):
        if is_under(path, directory):
            return (total - rank) / total
    return 0.0


def weighted_scores(records, policy: WeightedPolicy):
    weights = policy.weights
    bitrates = [r.bitrate or 0 for r in records]
    low, high = min(bitrates), max(bitrates)

    scores = []
    for record, bitrate in zip(records, bitrates):
        score = weights["lossless"] if record.lossless else 0

        if high == low:
            score += weights["bitrate"]
        else:
            score += weights["bitrate"] * (bitrate - low) / (high - low)

        score += weights["pathPriority"] * path_priority_fraction(
            record.path, policy.path_priority
        )
        score += weights["metadataQuality"] * metadata_count(record) / len(TAG_FIELDS)
        scores.append(score)

    return scores


def pick_weighted(records, policy: WeightedPolicy):
    """Return the winner, or None when the lead is below the threshold."""
    scores = weighted_scores(records, policy)
    ranked = sorted(range(len(records)), key=lambda i: -scores[i])
    best, second = ranked[0], ranked[1]
    if scores[best] - scores[second] < policy.score_difference_threshold:
        return None
    return records[best]


# -------------------- metadata comparison --------------------

def normalize_value(value):
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value.strip().lower()
    return value


def compare_metadata_fields(a: AudioRecord, b: AudioRecord):
    """List of (field, value_a, value_b) for the tag fields that differ."""
    differences = []
    for name in TAG_FIELDS:
        value_a = getattr(a, name)
        value_b = getattr(b, name)
        if normalize_value(value_a) == normalize_value(value_b):
            continue
        differences.append((name, value_a, value_b))
    return differences


# -------------------- evaluation --------------------

def evaluate_group(group: DuplicateGroup, policy, store):
    """
    Return (decision, reason). `decision` is None when the group needs a
    manual review; `reason` is a rendered explanation either way.
    """
    records = []
    for path in group.files:
        if path in store:
            records.append(store[path])
        else:
            warn(MSG_MISSING_MEMBER, path=path, group=group.id)

    if len(records) < 2:
        return None, text(MSG_REASON_NO_METADATA, group=group.id)

    if group.confidence < policy.confidence_threshold:
        return None, text(
            MSG_REASON_LOW_CONFIDENCE,
            group=group.id,
            confidence=group.confidence,
            threshold=policy.confidence_threshold,
        )

    if isinstance(policy, WeightedPolicy):
        winner = pick_weighted(records, policy)
        if winner is None:
            return None, text(MSG_REASON_NO_SEPARATION, group=group.id)
        rule_applied = "weighted"
        copy = False
    else:
        winner, rule_applied = find_best_file(
            records, policy.rule_order, policy.destination_dir
        )
        copy = bool(policy.destination_dir) and not is_under(
            winner.path, policy.destination_dir
        )

    keep_path = winner.path
    decision = Decision(
        group_id=group.id,
        keep=[keep_path],
        delete=[p for p in group.files if p != keep_path],
        not_duplicates=False,
        decision_type="auto",
        rule_applied=rule_applied,
        copy_to_destination=copy,
    )

    if policy.reveal_metadata:
        loser = next((r for r in records if r.path != keep_path), None)
        differences = compare_metadata_fields(winner, loser) if loser else []
        if differences and rule_applied == "tie":
            decision.needs_metadata_review = True
        else:
            decision.metadata_source = keep_path

    return decision, text(MSG_REASON_DECIDED, group=group.id, rule=rule_applied)


def decided_member_sets(decisions):
    """
    Member sets covered by `decisions`. Group ids are renumbered on every
    duplicate search, so only the files tie a decision to a group. Skipped
    decisions carry no files and cover nothing.
    """
    return {frozenset(d.files) for d in decisions if d.files}


def undecided_groups(groups, decisions):
    decided = decided_member_sets(decisions)
    return [g for g in groups if frozenset(g.files) not in decided]


def apply_rules_to_groups(groups, policy, store, existing_decisions=()):
    """
    Decide every group that the policy can decide on its own.

    `existing_decisions` are decisions from earlier runs. A group is
    already decided when its member set matches one of them;
    it is skipped when any of its files appears in a decision, earlier
    in this pass or from before.
    """
    result = AutoDecisionResult()
    decided = decided_member_sets(existing_decisions)

    claimed = set()
    for d in existing_decisions:
        claimed.update(d.files)

    for group in groups:
        if frozenset(group.files) in decided:
            continue

        if any(path in claimed for path in group.files):
            result.skipped_groups.append(group)
            continue

        decision, reason = evaluate_group(group, policy, store)
        logger.debug(reason)

        if decision is None:
            result.manual_groups.append(group)
            continue

        claimed.update(decision.files)

        if decision.needs_metadata_review:
            result.metadata_review_decisions.append(decision)
        else:
            result.auto_decisions.append(decision)

    return result


def summarize_auto_decisions(result: AutoDecisionResult):
    needs_copy = sum(1 for d in result.auto_decisions if d.copy_to_destination)
    in_place = len(result.auto_decisions) - needs_copy

    emit(MSG_SUMMARY_AUTO, count=len(result.auto_decisions))
    emit(MSG_SUMMARY_IN_PLACE, count=in_place)
    emit(MSG_SUMMARY_TO_COPY, count=needs_copy)
    emit(MSG_SUMMARY_METADATA, count=len(result.metadata_review_decisions))
    emit(MSG_SUMMARY_MANUAL, count=len(result.manual_groups))
    emit(MSG_SUMMARY_SKIPPED, count=len(result.skipped_groups))
