"""
codescore CLI: static code review with scoring and automatic fixes

Usage:
  codescore review app.py                   # findings, metrics and score
  codescore review app.py --apply           # review + write the improved code back
  codescore review app.js --type security_only --json
  codescore languages
  codescore config show
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from codescore.config import GLOBAL_ENV_FILE, settings
from codescore.engine import ReviewEngine
from codescore.errors import PayloadTooLarge, ReviewCancelled, ReviewTimeout
from codescore.languages import detect_language, get_languages
from codescore.models import MetricName, Review, Submission
from codescore.slack_notifier import send_slack_alert

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_REJECTED = 2


# ============================================================
#  Pretty print
# ============================================================

def print_review(review: Review):
    result = review.result
    print(f"\n{'='*60}")
    print(f"  codescore Review: {review.filename} ({review.language})")
    print(f"{'='*60}")
    print(f"\n  Score: {review.score}/100")
    print(f"  {result.summary}\n")

    for name in MetricName:
        print(f"    {name.value:<15} {result.metrics.get(name):>3}")
    print()

    if review.degraded:
        print("  Language not supported: only generic checks were run.\n")
    if review.failed_detectors:
        print(f"  Skipped after errors: {', '.join(review.failed_detectors)}\n")

    if not result.findings:
        print("  No issues found!")
        return

    print(f"  {len(result.findings)} issue(s) found\n")
    for f in result.findings:
        has_fix = " [FIX]" if f.auto_fixable else ""
        print(f"  {review.filename}:{f.line} {f.kind.value} {f.rule_id}{has_fix}")
        print(f"      {f.message}")
        if f.fix_note:
            print(f"      {f.fix_note}")
    print()


# ============================================================
#  Command: review
# ============================================================

def cmd_review(args) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"  Error: {path} not found")
        return EXIT_USAGE

    languages = get_languages()
    language = args.language or detect_language(path.name, languages) or path.suffix.lstrip(".") or "text"
    try:
        submission = Submission(
            source_text=path.read_text(encoding="utf-8"),
            language=language,
            review_type=args.type or settings.review_type,
            filename=path.name,
        )
    except ValueError as e:
        print(f"  Error: {e}")
        return EXIT_USAGE

    config = settings.review_config(timeout_ms=args.timeout_ms, max_workers=args.workers)
    engine = ReviewEngine(languages=languages)
    try:
        review = engine.review(submission, config)
    except (PayloadTooLarge, ReviewTimeout, ReviewCancelled) as e:
        print(f"  Error: {e}")
        return EXIT_REJECTED

    if args.json:
        output = review.model_dump_json(by_alias=True, indent=2)
        if args.out:
            Path(args.out).write_text(output + "\n", encoding="utf-8")
            print(f"  Review written to {args.out}")
        else:
            print(output)
    else:
        print_review(review)
        if args.out:
            Path(args.out).write_text(review.result.improved_code, encoding="utf-8")
            print(f"  Improved code written to {args.out}")

    if args.apply:
        if review.result.improved_code != submission.source_text:
            with open(path, "w", encoding="utf-8", newline="\n") as fh:
                fh.write(review.result.improved_code)
            print(f"  Applied fixes to {path}")
        else:
            print("  No applicable fixes found.")

    if args.notify:
        asyncio.run(send_slack_alert(review, settings))
    return EXIT_OK


# ============================================================
#  Command: languages / config
# ============================================================

def cmd_languages(args) -> int:
    languages = get_languages()
    print(f"\n  {len(languages)} language(s) available:\n")
    for key, config in sorted(languages.items()):
        rules = f", {len(config.rules)} pattern rule(s)" if config.rules else ""
        print(f"  {key:<12} {config.name:<12} {' '.join(config.extensions)}{rules}")
    print()
    return EXIT_OK


def cmd_config(args) -> int:
    if args.config_command != "show":
        print("  Usage: codescore config show")
        return EXIT_USAGE
    webhook = settings.slack_webhook_url
    print(f"\n  Timeout: {settings.timeout_ms} ms")
    print(f"  Workers: {settings.max_workers}")
    print(f"  Payload limit: {settings.max_payload_bytes} bytes")
    print(f"  Review type: {settings.review_type.value}")
    print(f"  Detectors: {settings.enabled_detectors.value}")
    if settings.disabled_rules:
        print(f"  Disabled rules: {', '.join(settings.disabled_rules)}")
    print(f"  Slack: {'enabled' if settings.slack_enabled and webhook else 'disabled'}"
          f" (alert below {settings.alert_score_threshold})")
    print(f"  Config: {GLOBAL_ENV_FILE}")
    print()
    return EXIT_OK


# ============================================================
#  Main CLI
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codescore",
        description="codescore: static code review with scoring and automatic fixes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  codescore review app.py
  codescore review app.py --apply
  codescore review main.cpp --language "C++" --type security_only
  codescore languages
""",
    )
    sub = parser.add_subparsers(dest="command")

    # --- review ---
    p_review = sub.add_parser("review", help="Review a source file")
    p_review.add_argument("file", help="File to review")
    p_review.add_argument("--language", help="Declared language (default: from the file extension)")
    p_review.add_argument("--type", help="full, quick_syntax or security_only")
    p_review.add_argument("--apply", action="store_true", help="Write the improved code back to the file")
    p_review.add_argument("--json", action="store_true", help="Print the review as JSON")
    p_review.add_argument("--out", help="Write JSON (with --json) or the improved code to this path")
    p_review.add_argument("--timeout-ms", type=int, help="Per-review time budget")
    p_review.add_argument("--workers", type=int, help="Detector threads")
    p_review.add_argument("--notify", action="store_true", help="Send a Slack alert for a poor review")
    p_review.add_argument("-v", "--verbose", action="store_true", help="Log progress")

    # --- languages ---
    sub.add_parser("languages", help="List supported languages")

    # --- config ---
    p_config = sub.add_parser("config", help="View configuration")
    config_sub = p_config.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Show current config")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = logging.INFO if getattr(args, "verbose", False) else logging.WARNING
    logging.basicConfig(level=level, format="%(message)s")

    if args.command == "review":
        return cmd_review(args)
    elif args.command == "languages":
        return cmd_languages(args)
    elif args.command == "config":
        return cmd_config(args)
    parser.print_help()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
