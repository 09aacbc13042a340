#!/usr/bin/env python3
"""
cli.py

audiodedupe command line.

Responsibilities:
- Parse subcommands and global options
- Resolve the message language (--lang, DEDUPE_LANG, settings document)
- Load settings and data paths, then hand over to audiodedupe.pipeline
- Render message payloads carried by SystemExit / RuntimeError
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from audiodedupe import pipeline
from audiodedupe.config import config_path, data_paths, load_config
from audiodedupe.i18n import available_languages, configure, msg, render, setup_logging

# ================= I18N MESSAGE KEYS =================

MSG_UNKNOWN_LANGUAGE = "CLI_UNKNOWN_LANGUAGE"
MSG_INTERRUPTED = "CLI_INTERRUPTED"

# ====================================================


def resolve_language(cli_lang, config_lang, langs):
    """Returns (language, rejected) where rejected is an unknown request."""
    for candidate in (cli_lang, os.getenv("DEDUPE_LANG"), config_lang):
        if not candidate:
            continue
        if candidate in langs:
            return candidate, None
        return "en", candidate
    return "en", None


def peek_config_language(path):
    """Language from the settings document without failing when it is absent."""
    if not path.exists():
        return None
    try:
        return load_config(path).get("language")
    except SystemExit:
        return None


def build_parser():
    parser = argparse.ArgumentParser(
        prog="audiodedupe",
        description="Find, review and safely remove duplicate audio files",
    )

    parser.add_argument("--lang", help="Override language (en, es)")
    parser.add_argument("--raw", action="store_true", help="Print message payloads untranslated")
    parser.add_argument("--config", help="Settings document (default: $DEDUPE_CONFIG or ./config.json)")
    parser.add_argument("--data-dir", help="Data directory (default: $DEDUPE_DATA_DIR or ./data)")
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bars")

    sub = parser.add_subparsers(dest="command")

    p_init = sub.add_parser("init", help="Write a default settings document")
    p_init.add_argument("--force", action="store_true", help="Overwrite existing settings")

    sub.add_parser("status", help="Show settings and data files")
    sub.add_parser("scan", help="Discover audio files and extract metadata")
    sub.add_parser("fix-metadata", help="Repair files missing artist or title")
    sub.add_parser("find-dupes", help="Group duplicate files")
    sub.add_parser("review", help="Decide duplicate groups (auto rules + manual review)")

    p_exec = sub.add_parser("execute", help="Apply decisions: copy, retag, delete")
    p_exec.add_argument("--decisions", help="Decision file (default: data/decisions.json)")
    p_exec.add_argument("--dry-run", action="store_true", help="Show what would happen")

    for name, help_text in (
        ("find-conflicts", "Report files kept in one group and deleted in another"),
        ("resolve-conflicts", "Rewrite conflicting decisions"),
        ("verify", "Exit with status 1 when a decision file has conflicts"),
        ("find-suspicious", "Report deletions that look like different recordings"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--decisions", help="Decision file to read")

    sub.add_parser("all", help="scan, fix-metadata, find-dupes, review, execute")

    return parser


def dispatch(args, lang):
    paths = data_paths(args.data_dir)
    progress = not args.no_progress

    if args.command == "init":
        return pipeline.run_init(
            args.config,
            lang=args.lang if args.lang == lang else None,
            force=args.force,
        )

    if args.command == "status":
        return pipeline.run_status(paths, args.config, lang=lang)

    cfg = load_config(config_path(args.config))

    if args.command == "scan":
        return pipeline.run_scan(cfg, paths, progress=progress)

    if args.command == "fix-metadata":
        return pipeline.run_fix_metadata(cfg, paths)

    if args.command == "find-dupes":
        return pipeline.run_find_dupes(cfg, paths, progress=progress)

    if args.command == "review":
        return pipeline.run_review(cfg, paths, config_file=args.config)

    if args.command == "execute":
        return pipeline.run_execute(
            cfg, paths,
            decisions_file=args.decisions,
            dry_run=args.dry_run,
            progress=progress,
        )

    if args.command == "find-conflicts":
        return pipeline.run_find_conflicts(paths, args.decisions)

    if args.command == "resolve-conflicts":
        return pipeline.run_resolve_conflicts(cfg, paths, args.decisions)

    if args.command == "verify":
        return pipeline.run_verify(paths, args.decisions)

    if args.command == "find-suspicious":
        return pipeline.run_find_suspicious(paths, args.decisions)

    if args.command == "all":
        return pipeline.run_all(cfg, paths, config_file=args.config, progress=progress)

    return None


def main(argv=None):
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging()

    lang, rejected = resolve_language(
        args.lang,
        peek_config_language(config_path(args.config)),
        available_languages(),
    )
    configure(lang, raw=args.raw)
    if rejected:
        print(render(msg(MSG_UNKNOWN_LANGUAGE, lang=rejected)), file=sys.stderr)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    try:
        status = dispatch(args, lang)
    except KeyboardInterrupt:
        print(render(msg(MSG_INTERRUPTED)), file=sys.stderr)
        sys.exit(130)
    except SystemExit as e:
        if isinstance(e.code, dict):
            print(render(e.code), file=sys.stderr)
            sys.exit(1)
        raise
    except RuntimeError as e:
        payload = e.args[0] if e.args else str(e)
        print(render(payload), file=sys.stderr)
        sys.exit(1)

    sys.exit(status or 0)


if __name__ == "__main__":
    main()
