"""
reviewer.py

Interactive review.

- manual review: one duplicate group at a time, keep one file, mark the
  group as not duplicates, skip it, or quit
- metadata merge review: for tie decisions whose copies carry different
  tags, pick per field which copy the keeper takes its value from

Every recorded decision is handed to `save` immediately, so quitting or
Ctrl+C never loses more than the group on screen.
"""

from dataclasses import dataclass

from audiodedupe.auto_decider import normalize_value, undecided_groups
from audiodedupe.i18n import emit, text
from audiodedupe.metadata import format_duration, format_file_size
from audiodedupe.models import TAG_FIELDS, Decision
from audiodedupe.prompts import choose, confirm

# ================= I18N MESSAGE KEYS =================

MSG_REVIEW_START = "REVIEW_START"
MSG_REVIEW_GROUP = "REVIEW_GROUP"
MSG_REVIEW_CONFIDENCE = "REVIEW_CONFIDENCE"
MSG_REVIEW_REASONS = "REVIEW_REASONS"
MSG_REVIEW_FILE = "REVIEW_FILE"
MSG_REVIEW_FILE_DETAILS = "REVIEW_FILE_DETAILS"
MSG_REVIEW_FILE_TAGS = "REVIEW_FILE_TAGS"
MSG_REVIEW_NO_METADATA = "REVIEW_NO_METADATA"
MSG_REVIEW_WHAT_NEXT = "REVIEW_WHAT_NEXT"
MSG_REVIEW_KEEP = "REVIEW_OPTION_KEEP"
MSG_REVIEW_KEEP_RECOMMENDED = "REVIEW_OPTION_KEEP_RECOMMENDED"
MSG_REVIEW_NOT_DUPLICATES = "REVIEW_OPTION_NOT_DUPLICATES"
MSG_REVIEW_SKIP = "REVIEW_OPTION_SKIP"
MSG_REVIEW_QUIT = "REVIEW_OPTION_QUIT"
MSG_REVIEW_CONFIRM_DELETE = "REVIEW_CONFIRM_DELETE"
MSG_REVIEW_RECORDED = "REVIEW_RECORDED"
MSG_REVIEW_SAVING = "REVIEW_SAVING"

MSG_MERGE_START = "MERGE_START"
MSG_MERGE_GROUP = "MERGE_GROUP"
MSG_MERGE_FIELD = "MERGE_PROMPT_FIELD"
MSG_MERGE_VALUE = "MERGE_OPTION_VALUE"
MSG_MERGE_KEEPER_TAGS = "MERGE_OPTION_KEEPER_TAGS"
MSG_MERGE_QUIT = "MERGE_OPTION_QUIT"
MSG_MERGE_RECORDED = "MERGE_RECORDED"

MSG_SUMMARY_HEADER = "DECISION_SUMMARY_HEADER"
MSG_SUMMARY_REVIEWED = "DECISION_SUMMARY_REVIEWED"
MSG_SUMMARY_DELETE = "DECISION_SUMMARY_DELETE"
MSG_SUMMARY_NOT_DUPLICATES = "DECISION_SUMMARY_NOT_DUPLICATES"
MSG_SUMMARY_SKIPPED = "DECISION_SUMMARY_SKIPPED"
MSG_SUMMARY_DECIDED = "DECISION_SUMMARY_DECIDED"

MSG_EMPTY = "EMPTY_VALUE"

# ====================================================


@dataclass
class ReviewOutcome:
    recorded: int = 0
    quit: bool = False


# -------------------- display --------------------

def display_group_files(group, store):
    for number, path in enumerate(group.files, start=1):
        record = store.get(path)
        emit(
            MSG_REVIEW_FILE,
            mark="*" if path == group.suggested_keep else " ",
            number=number,
            path=path,
        )

        if record is None:
            emit(MSG_REVIEW_NO_METADATA)
            continue

        details = []
        if record.duration is not None:
            details.append(format_duration(record.duration))
        if record.bitrate:
            details.append(f"{record.bitrate}kbps")
        if record.lossless:
            details.append("lossless")
        details.append(format_file_size(record.size))
        emit(MSG_REVIEW_FILE_DETAILS, details=" | ".join(details))

        tags = [
            f"{name.capitalize()}: {getattr(record, name)}"
            for name in ("artist", "title", "album")
            if getattr(record, name)
        ]
        if tags:
            emit(MSG_REVIEW_FILE_TAGS, tags=" | ".join(tags))


def short_description(path, record):
    description = "/".join(path.split("/")[-2:])
    if record is not None and record.bitrate:
        description += f" ({record.bitrate}kbps)"
    if record is not None and record.lossless:
        description += " [lossless]"
    return description


# -------------------- manual review --------------------

def prompt_for_decision(ask, group, store):
    """A Decision, or None when the user quits."""
    options = []
    for index, path in enumerate(group.files):
        key = MSG_REVIEW_KEEP_RECOMMENDED if path == group.suggested_keep else MSG_REVIEW_KEEP
        label = text(key, number=index + 1, description=short_description(path, store.get(path)))
        options.append((label, index))

    options += [
        (text(MSG_REVIEW_NOT_DUPLICATES), "not-duplicates"),
        (text(MSG_REVIEW_SKIP), "skip"),
        (text(MSG_REVIEW_QUIT), "quit"),
    ]

    answer = choose(ask, MSG_REVIEW_WHAT_NEXT, options)

    if answer == "quit":
        return None

    if answer == "skip":
        return Decision(group_id=group.id)

    if answer == "not-duplicates":
        return Decision(group_id=group.id, keep=list(group.files), not_duplicates=True)

    keep_path = group.files[answer]
    delete_paths = [p for p in group.files if p != keep_path]

    if not confirm(
        ask,
        MSG_REVIEW_CONFIRM_DELETE,
        default=True,
        count=len(delete_paths),
        name=keep_path.split("/")[-1],
    ):
        return Decision(group_id=group.id)

    return Decision(group_id=group.id, keep=[keep_path], delete=delete_paths)


def review_duplicates(groups, store, decisions, ask=input, save=None):
    """
    Review `groups` not yet decided in `decisions`. New decisions are
    appended to `decisions` and `save(decisions)` runs after each one.
    """
    pending = undecided_groups(groups, decisions)
    reviewed = len(groups) - len(pending)
    outcome = ReviewOutcome()

    emit(MSG_REVIEW_START, count=len(pending), reviewed=reviewed)

    try:
        for position, group in enumerate(pending, start=1):
            emit(MSG_REVIEW_GROUP, index=position, total=len(pending), group=group.id)
            emit(MSG_REVIEW_CONFIDENCE, confidence=group.confidence)
            emit(MSG_REVIEW_REASONS, reasons=", ".join(group.match_reasons))
            display_group_files(group, store)

            decision = prompt_for_decision(ask, group, store)
            if decision is None:
                emit(MSG_REVIEW_SAVING)
                outcome.quit = True
                break

            decisions.append(decision)
            outcome.recorded += 1
            if save:
                save(decisions)
            emit(MSG_REVIEW_RECORDED, group=group.id)
    except KeyboardInterrupt:
        emit(MSG_REVIEW_SAVING)
        outcome.quit = True

    return outcome


# -------------------- metadata merge review --------------------

def differing_fields(paths, store):
    """
    field -> [(path, value)] for the tag fields whose values differ
    between the copies; one entry per distinct value, first copy wins.
    """
    out = {}
    for name in TAG_FIELDS:
        seen = {}
        for path in paths:
            record = store.get(path)
            if record is None:
                continue
            value = getattr(record, name)
            key = normalize_value(value)
            if key not in seen:
                seen[key] = (path, value)
        if len(seen) > 1:
            out[name] = list(seen.values())
    return out


def prompt_metadata_source(ask, decision, store):
    """
    Per-field source mapping for `decision`, or None when the user quits.
    Fields that do not differ come from the keeper.
    """
    keeper = decision.keep[0]
    source = {name: keeper for name in TAG_FIELDS}

    for name, candidates in differing_fields(decision.files, store).items():
        options = [
            (
                text(
                    MSG_MERGE_VALUE,
                    value=value if value not in (None, "") else text(MSG_EMPTY),
                    description=short_description(path, store.get(path)),
                ),
                path,
            )
            for path, value in candidates
        ]
        options.append((text(MSG_MERGE_KEEPER_TAGS), "keeper"))
        options.append((text(MSG_MERGE_QUIT), "quit"))

        answer = choose(ask, MSG_MERGE_FIELD, options, field=name)
        if answer == "quit":
            return None
        if answer == "keeper":
            return {n: keeper for n in TAG_FIELDS}
        source[name] = answer

    return source


def review_metadata(decisions, store, ask=input, save=None, all_decisions=None):
    """
    Resolve the pending metadata choices of `decisions` in place.
    `save(all_decisions)` runs after each one.
    """
    pending = [d for d in decisions if d.needs_metadata_review and d.keep]
    outcome = ReviewOutcome()

    emit(MSG_MERGE_START, count=len(pending))

    try:
        for position, decision in enumerate(pending, start=1):
            emit(MSG_MERGE_GROUP, index=position, total=len(pending), group=decision.group_id)

            source = prompt_metadata_source(ask, decision, store)
            if source is None:
                emit(MSG_REVIEW_SAVING)
                outcome.quit = True
                break

            keeper = decision.keep[0]
            if all(p == keeper for p in source.values()):
                decision.metadata_source = keeper
            else:
                decision.metadata_source = source
            decision.needs_metadata_review = False
            outcome.recorded += 1

            if save:
                save(all_decisions if all_decisions is not None else decisions)
            emit(MSG_MERGE_RECORDED, group=decision.group_id)
    except KeyboardInterrupt:
        emit(MSG_REVIEW_SAVING)
        outcome.quit = True

    return outcome


# -------------------- summary --------------------

def summarize_decisions(decisions):
    to_delete = sum(len(d.delete) for d in decisions)
    not_duplicates = sum(1 for d in decisions if d.not_duplicates)
    skipped = sum(1 for d in decisions if d.skipped)
    decided = len(decisions) - not_duplicates - skipped

    emit(MSG_SUMMARY_HEADER)
    emit(MSG_SUMMARY_REVIEWED, count=len(decisions))
    emit(MSG_SUMMARY_DELETE, count=to_delete)
    emit(MSG_SUMMARY_NOT_DUPLICATES, count=not_duplicates)
    emit(MSG_SUMMARY_SKIPPED, count=skipped)
    emit(MSG_SUMMARY_DECIDED, count=decided)
