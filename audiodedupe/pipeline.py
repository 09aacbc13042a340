"""
pipeline.py

Commands of the dedupe workflow.

scan -> fix-metadata -> find-dupes -> review -> execute

plus the audits over a decision set (find-conflicts, resolve-conflicts,
verify, find-suspicious). Every run_* function takes the loaded settings,
the data paths and, when it prompts, an `ask` callable. Stages that return
a value return an exit status.
"""

from pathlib import Path

from audiodedupe import __version__
from audiodedupe.auto_decider import (
    apply_rules_to_groups,
    summarize_auto_decisions,
)
from audiodedupe.cache import InferenceCache
from audiodedupe.clustering import find_duplicates
from audiodedupe.config import (
    config_path,
    default_config,
    inference_command,
    load_rules,
    save_config,
    save_rules,
)
from audiodedupe.conflicts import (
    find_conflicts,
    report_conflicts,
    report_resolutions,
    resolve_conflicts,
)
from audiodedupe.deleter import (
    calculate_deletion_summary,
    execute_decisions,
    summarize_deletions,
)
from audiodedupe.i18n import emit, log
from audiodedupe.matcher import MatcherSettings
from audiodedupe.metadata import extract_metadata, format_file_size
from audiodedupe.metadata_fixer import (
    find_files_with_missing_metadata,
    fix_metadata_interactive,
    make_fetcher,
    new_fix_state,
)
from audiodedupe.models import ScanState
from audiodedupe.policies import OrderedRulePolicy, policy_to_dict
from audiodedupe.prompts import confirm
from audiodedupe.reviewer import review_duplicates, review_metadata, summarize_decisions
from audiodedupe.rules import extract_unique_directories, prompt_for_rules, prompt_rules_action
from audiodedupe.scanner import list_audio_files, scan_files
from audiodedupe.storage import (
    clear_fix_state,
    clear_store,
    load_decisions,
    load_duplicates,
    load_fix_state,
    load_scan_state,
    load_store,
    save_decisions,
    save_duplicates,
    save_fix_state,
    save_store,
    utcnow,
    write_json,
)
from audiodedupe.suspicious import find_suspicious, report_suspicious
from audiodedupe.writer import write_tags

# ================= I18N MESSAGE KEYS =================

MSG_INIT_EXISTS = "INIT_EXISTS"
MSG_INIT_DONE = "INIT_DONE"

MSG_STATUS_HEADER = "STATUS_HEADER"
MSG_STATUS_VERSION = "STATUS_VERSION"
MSG_STATUS_LANGUAGE = "STATUS_LANGUAGE"
MSG_STATUS_CONFIG = "STATUS_CONFIG"
MSG_STATUS_DATA_DIR = "STATUS_DATA_DIR"
MSG_STATUS_RECORDS = "STATUS_RECORDS"
MSG_STATUS_GROUPS = "STATUS_GROUPS"
MSG_STATUS_DECISIONS = "STATUS_DECISIONS"
MSG_STATUS_FIX_CURSOR = "STATUS_FIX_CURSOR"

MSG_SCAN_RESUME_PROMPT = "SCAN_RESUME_PROMPT"
MSG_SCAN_RESUMING = "SCAN_RESUMING"
MSG_SCAN_STARTING = "SCAN_STARTING"
MSG_SCAN_ROOTS = "SCAN_ROOTS"
MSG_SCAN_DISCOVERED = "SCAN_DISCOVERED"
MSG_SCAN_DONE = "SCAN_DONE"
MSG_SCAN_ERRORS = "SCAN_ERRORS"

MSG_NO_STORE = "PIPELINE_NO_STORE"
MSG_NO_DUPLICATES = "PIPELINE_NO_DUPLICATES"
MSG_NO_DECISIONS = "PIPELINE_NO_DECISIONS"
MSG_NOTHING_TO_FIX = "FIX_NOTHING_TO_DO"
MSG_FIX_PROGRESS_FOUND = "FIX_PROGRESS_FOUND"
MSG_FIX_RESUME_PROMPT = "FIX_RESUME_PROMPT"

MSG_DUPES_LOADED = "DUPES_LOADED"
MSG_DUPES_FOUND = "DUPES_FOUND"
MSG_DUPES_FILES = "DUPES_FILES"
MSG_DUPES_SAVED = "DUPES_SAVED"

MSG_REVIEW_CONFIGURE_PROMPT = "REVIEW_CONFIGURE_PROMPT"
MSG_REVIEW_RULES_SAVED = "REVIEW_RULES_SAVED"
MSG_REVIEW_ALL_MANUAL = "REVIEW_ALL_MANUAL"
MSG_REVIEW_SAVED = "REVIEW_SAVED"

MSG_EXEC_CONFLICTS = "EXEC_REFUSED_CONFLICTS"
MSG_EXEC_PENDING_METADATA = "EXEC_PENDING_METADATA"
MSG_EXEC_NOTHING = "EXEC_NOTHING"
MSG_EXEC_SUMMARY_HEADER = "EXEC_SUMMARY_HEADER"
MSG_EXEC_SUMMARY_FILES = "EXEC_SUMMARY_FILES"
MSG_EXEC_SUMMARY_SIZE = "EXEC_SUMMARY_SIZE"
MSG_EXEC_SUMMARY_AUTO = "EXEC_SUMMARY_AUTO"
MSG_EXEC_SUMMARY_MANUAL = "EXEC_SUMMARY_MANUAL"
MSG_EXEC_SHOW_LIST = "EXEC_SHOW_LIST"
MSG_EXEC_LIST_ITEM = "EXEC_LIST_ITEM"
MSG_EXEC_CONFIRM = "EXEC_CONFIRM"
MSG_EXEC_CONFIRM_AGAIN = "EXEC_CONFIRM_AGAIN"
MSG_EXEC_CANCELLED = "EXEC_CANCELLED"
MSG_EXEC_LOG_SAVED = "EXEC_LOG_SAVED"

MSG_CONFLICTS_SAVED = "CONFLICTS_SAVED"
MSG_RESOLVE_NONE = "RESOLVE_NONE"
MSG_RESOLVE_SAVED = "RESOLVE_SAVED"
MSG_VERIFY_OK = "VERIFY_OK"
MSG_VERIFY_FAILED = "VERIFY_FAILED"

MSG_ALL_STEP = "ALL_STEP"
MSG_ALL_CONTINUE = "ALL_CONTINUE"
MSG_ALL_FIX_PROMPT = "ALL_FIX_PROMPT"
MSG_ALL_STOPPED = "ALL_STOPPED"

# ====================================================


def markers(cfg):
    return tuple(cfg.get("libraryMarkers") or ("Music",))


def decisions_path(paths, given=None):
    return Path(given).resolve() if given else paths.decisions


# ================= INIT / STATUS =================

def run_init(config_file=None, lang=None, force=False):
    path = config_path(config_file)
    if path.exists() and not force:
        emit(MSG_INIT_EXISTS, path=str(path))
        return 1

    cfg = default_config()
    if lang:
        cfg["language"] = lang
    save_config(cfg, path)
    emit(MSG_INIT_DONE, path=str(path))
    return 0


def run_status(paths, config_file=None, lang="en"):
    path = config_path(config_file)
    missing = "-"

    emit(MSG_STATUS_HEADER)
    emit(MSG_STATUS_VERSION, version=__version__)
    emit(MSG_STATUS_LANGUAGE, lang=lang)
    emit(MSG_STATUS_CONFIG, path=str(path) if path.exists() else missing)
    emit(MSG_STATUS_DATA_DIR, path=str(paths.root))

    store = load_store(paths.scan_results)
    emit(MSG_STATUS_RECORDS, count=len(store))

    dupes = load_duplicates(paths.duplicates)
    emit(MSG_STATUS_GROUPS, count=dupes.total_groups if dupes else missing)

    decisions = load_decisions(paths.decisions).decisions
    emit(MSG_STATUS_DECISIONS, count=len(decisions))

    state = load_fix_state(paths.fix_state)
    if state is not None:
        emit(MSG_STATUS_FIX_CURSOR, index=state.last_processed_index,
             fixed=state.fixed_count, skipped=state.skipped_count)
    return 0


# ================= SCAN =================

def run_scan(cfg, paths, ask=input, progress=True, extract=extract_metadata):
    state = load_scan_state(paths.scan_state)
    store = load_store(paths.scan_results)

    if state is not None and store and confirm(
        ask, MSG_SCAN_RESUME_PROMPT, default=True, count=len(store)
    ):
        state.resumed_at = utcnow()
        emit(MSG_SCAN_RESUMING, count=len(store))
    else:
        clear_store(paths.scan_results)
        store = {}
        state = ScanState(started_at=utcnow())
        emit(MSG_SCAN_STARTING)

    emit(MSG_SCAN_ROOTS, roots=", ".join(cfg["scanPaths"]))
    files = list(list_audio_files(
        cfg["scanPaths"],
        cfg["supportedExtensions"],
        cfg.get("excludePatterns", ()),
    ))
    emit(MSG_SCAN_DISCOVERED, count=len(files))

    result = scan_files(
        files, store, paths.scan_results, state, paths.scan_state,
        extract=extract, progress=progress,
    )

    emit(MSG_SCAN_DONE, count=len(store))
    if result.errors:
        emit(MSG_SCAN_ERRORS, count=result.errors)
    return 0


# ================= FIX METADATA =================

def run_fix_metadata(cfg, paths, ask=input, fetch=None, write=write_tags):
    store = load_store(paths.scan_results)
    if not store:
        emit(MSG_NO_STORE)
        return 1

    files = find_files_with_missing_metadata(store)
    if not files:
        emit(MSG_NOTHING_TO_FIX)
        clear_fix_state(paths.fix_state)
        return 0

    existing = load_fix_state(paths.fix_state)
    if existing is not None and existing.last_processed_index > 0:
        emit(MSG_FIX_PROGRESS_FOUND, fixed=existing.fixed_count,
             remaining=max(len(files) - existing.last_processed_index, 0))
        if not confirm(ask, MSG_FIX_RESUME_PROMPT, default=True):
            existing = None
    state = new_fix_state(existing)

    cache = InferenceCache.load(paths.cache)
    fetch = fetch or make_fetcher(inference_command(), cache=cache)

    def checkpoint(result):
        save_fix_state(paths.fix_state, result.state)
        cache.save(paths.cache)
        if result.updated:
            store.update(result.updated)
            save_store(paths.scan_results, store)
            result.updated.clear()

    result = fix_metadata_interactive(
        files, state, cache, fetch, ask=ask, write=write, checkpoint=checkpoint,
    )

    if not result.quit:
        clear_fix_state(paths.fix_state)
    return 0


# ================= FIND DUPLICATES =================

def run_find_dupes(cfg, paths, progress=True):
    store = load_store(paths.scan_results)
    if not store:
        emit(MSG_NO_STORE)
        return 1

    emit(MSG_DUPES_LOADED, count=len(store))
    groups = find_duplicates(store, MatcherSettings.from_config(cfg), progress=progress)
    save_duplicates(paths.duplicates, groups)

    emit(MSG_DUPES_FOUND, count=len(groups))
    emit(MSG_DUPES_FILES, count=sum(len(g.files) for g in groups))
    emit(MSG_DUPES_SAVED, path=str(paths.duplicates))
    return 0


# ================= REVIEW =================

def choose_policy(cfg, store, ask, cache, config_file=None):
    """The policy for this review, or None for an all-manual review."""
    policy = load_rules(cfg)

    if policy is not None:
        if prompt_rules_action(ask, policy) == "use":
            return policy
    elif not confirm(ask, MSG_REVIEW_CONFIGURE_PROMPT, default=True):
        emit(MSG_REVIEW_ALL_MANUAL)
        return None

    directories = list(dict.fromkeys(
        cache.recent_directories + extract_unique_directories(store)
    ))
    policy = prompt_for_rules(ask, directories)
    if isinstance(policy, OrderedRulePolicy) and policy.destination_dir:
        cache.add_recent_directory(policy.destination_dir)
    save_rules(policy, config_path(config_file))
    cfg["duplicateRules"] = policy_to_dict(policy)
    emit(MSG_REVIEW_RULES_SAVED)
    return policy


def run_review(cfg, paths, ask=input, config_file=None):
    store = load_store(paths.scan_results)
    if not store:
        emit(MSG_NO_STORE)
        return 1

    dupes = load_duplicates(paths.duplicates)
    if not dupes or not dupes.groups:
        emit(MSG_NO_DUPLICATES)
        return 1

    decisions = load_decisions(paths.decisions).decisions

    def save(current):
        save_decisions(paths.decisions, current)

    cache = InferenceCache.load(paths.cache)
    policy = choose_policy(cfg, store, ask, cache, config_file)
    cache.save(paths.cache)

    if policy is not None:
        result = apply_rules_to_groups(dupes.groups, policy, store, decisions)
        summarize_auto_decisions(result)
        decisions.extend(result.decisions)
        save(decisions)
        manual = result.manual_groups
    else:
        manual = dupes.groups

    outcome = review_metadata(decisions, store, ask=ask, save=save)

    if not outcome.quit:
        review_duplicates(manual, store, decisions, ask=ask, save=save)

    save(decisions)
    emit(MSG_REVIEW_SAVED, path=str(paths.decisions))
    summarize_decisions(decisions)
    return 0


# ================= EXECUTE =================

def show_deletion_summary(summary):
    emit(MSG_EXEC_SUMMARY_HEADER)
    emit(MSG_EXEC_SUMMARY_FILES, count=summary.total_files)
    emit(MSG_EXEC_SUMMARY_SIZE, size=format_file_size(summary.total_size))
    emit(MSG_EXEC_SUMMARY_AUTO, count=summary.auto_count)
    emit(MSG_EXEC_SUMMARY_MANUAL, count=summary.manual_count)


def run_execute(cfg, paths, ask=input, decisions_file=None, dry_run=False, progress=True):
    source = decisions_path(paths, decisions_file)
    decisions = load_decisions(source).decisions
    if not decisions:
        emit(MSG_NO_DECISIONS, path=str(source))
        return 1

    conflicts = find_conflicts(decisions)
    if conflicts:
        report_conflicts(decisions, conflicts)
        emit(MSG_EXEC_CONFLICTS, count=len(conflicts))
        return 1

    pending_metadata = sum(1 for d in decisions if d.needs_metadata_review)
    if pending_metadata:
        emit(MSG_EXEC_PENDING_METADATA, count=pending_metadata)

    # the merge needs the losers' tags, so they stay until the review is done
    actionable = [
        d for d in decisions
        if d.delete and not d.not_duplicates and not d.needs_metadata_review
    ]
    if not actionable:
        emit(MSG_EXEC_NOTHING)
        return 0

    store = load_store(paths.scan_results)
    summary = calculate_deletion_summary(actionable, store)
    show_deletion_summary(summary)

    if confirm(ask, MSG_EXEC_SHOW_LIST, default=False):
        for path in summary.files_to_delete:
            emit(MSG_EXEC_LIST_ITEM, path=path)

    if not dry_run:
        if not confirm(ask, MSG_EXEC_CONFIRM, default=False, count=summary.total_files):
            emit(MSG_EXEC_CANCELLED)
            return 0
        if not confirm(ask, MSG_EXEC_CONFIRM_AGAIN, default=False, count=summary.total_files):
            emit(MSG_EXEC_CANCELLED)
            return 0

    policy = load_rules(cfg)
    destination = policy.destination_dir if isinstance(policy, OrderedRulePolicy) else ""

    deletion_log = execute_decisions(
        actionable,
        store,
        paths.trash,
        destination_dir=destination,
        dry_run=dry_run,
        progress=progress,
    )
    if dry_run:
        return 0

    write_json(paths.deletion_log, deletion_log.to_dict())
    emit(MSG_EXEC_LOG_SAVED, path=str(paths.deletion_log))

    removed = {e.path for e in deletion_log.entries if e.success}
    if store:
        save_store(paths.scan_results, {p: r for p, r in store.items() if p not in removed})

    summarize_deletions(deletion_log)
    return 0


# ================= CONFLICT AUDITS =================

def run_find_conflicts(paths, decisions_file=None):
    source = decisions_path(paths, decisions_file)
    decisions = load_decisions(source).decisions
    if not decisions:
        emit(MSG_NO_DECISIONS, path=str(source))
        return 1

    conflicts = report_conflicts(decisions)
    write_json(paths.conflicts, {
        "generatedAt": utcnow(),
        "totalConflicts": len(conflicts),
        "conflicts": [c.to_dict() for c in conflicts],
    })
    emit(MSG_CONFLICTS_SAVED, path=str(paths.conflicts))
    return 0


def run_resolve_conflicts(cfg, paths, decisions_file=None):
    source = decisions_path(paths, decisions_file)
    before = load_decisions(source).decisions
    if not before:
        emit(MSG_NO_DECISIONS, path=str(source))
        return 1

    after, resolutions = resolve_conflicts(before, markers=markers(cfg))
    if not resolutions:
        emit(MSG_RESOLVE_NONE)

    report_resolutions(before, after, resolutions)

    save_decisions(paths.decisions_resolved, after)
    write_json(paths.resolutions, {
        "resolvedAt": utcnow(),
        "totalResolutions": len(resolutions),
        "resolutions": [r.to_dict() for r in resolutions],
    })
    emit(MSG_RESOLVE_SAVED, decisions=str(paths.decisions_resolved),
         resolutions=str(paths.resolutions))
    return 0


def run_verify(paths, decisions_file=None):
    if decisions_file is None and paths.decisions_resolved.exists():
        source = paths.decisions_resolved
    else:
        source = decisions_path(paths, decisions_file)
    decisions = load_decisions(source).decisions
    if not decisions:
        emit(MSG_NO_DECISIONS, path=str(source))
        return 1

    conflicts = find_conflicts(decisions)
    if conflicts:
        report_conflicts(decisions, conflicts)
        emit(MSG_VERIFY_FAILED, count=len(conflicts), path=str(source))
        return 1

    emit(MSG_VERIFY_OK, count=len(decisions), path=str(source))
    return 0


def run_find_suspicious(paths, decisions_file=None):
    source = decisions_path(paths, decisions_file)
    decisions = load_decisions(source).decisions
    if not decisions:
        emit(MSG_NO_DECISIONS, path=str(source))
        return 1

    report_suspicious(find_suspicious(decisions))
    return 0


# ================= ALL =================

def run_all(cfg, paths, ask=input, config_file=None, progress=True):
    steps = [
        ("scan", lambda: run_scan(cfg, paths, ask=ask, progress=progress)),
        ("fix-metadata", lambda: run_fix_metadata(cfg, paths, ask=ask)),
        ("find-dupes", lambda: run_find_dupes(cfg, paths, progress=progress)),
        ("review", lambda: run_review(cfg, paths, ask=ask, config_file=config_file)),
        ("execute", lambda: run_execute(cfg, paths, ask=ask, progress=progress)),
    ]

    for position, (name, step) in enumerate(steps):
        if name == "fix-metadata" and not confirm(ask, MSG_ALL_FIX_PROMPT, default=False):
            continue

        log(MSG_ALL_STEP, step=name)
        status = step()
        if status:
            emit(MSG_ALL_STOPPED, step=name)
            return status

        following = steps[position + 1][0] if position + 1 < len(steps) else None
        if following and following != "fix-metadata" and not confirm(
            ask, MSG_ALL_CONTINUE, default=True, step=following
        ):
            emit(MSG_ALL_STOPPED, step=name)
            return 0

    return 0
