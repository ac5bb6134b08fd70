"""Command line entry point for the issue tracker sync."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from settings import SettingsError, load_sync_settings
from tracker import github_source
from tracker.google_credentials import CredentialsFileInvalidError
from tracker.issue_keys import extract_issue_keys
from tracker.logging_config import configure_logging
from tracker.models import APPS, ENVIRONMENTS
from tracker.sheets_client import SheetsClientError, build_client
from tracker.sync import sync_issues

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _validate_inputs(args: argparse.Namespace) -> tuple[str, str] | None:
    environment = github_source.normalize_environment(args.environment)
    if environment not in ENVIRONMENTS:
        print(
            f'Error: invalid environment "{args.environment}". Must be: {", ".join(ENVIRONMENTS)}',
            file=sys.stderr,
        )
        return None
    app = (args.app or "").strip().lower()
    if app not in APPS:
        print(f'Error: invalid app "{args.app}". Must be: {", ".join(APPS)}', file=sys.stderr)
        return None
    return environment, app


def command_sync(args: argparse.Namespace) -> int:
    validated = _validate_inputs(args)
    if validated is None:
        return EXIT_USAGE
    environment, app = validated

    configure_logging(logging.DEBUG if args.verbose else logging.INFO, Path(args.log_file) if args.log_file else None)

    try:
        settings = load_sync_settings(args.settings).with_overrides(
            spreadsheet_id=args.spreadsheet_id,
            credentials=args.credentials,
            sheet_name=args.sheet_name,
        )
        if not settings.spreadsheet_id:
            raise SettingsError("A spreadsheet id is required (--spreadsheet-id or TRACKER_SPREADSHEET_ID)")

        logger.info("Environment: %s", environment)
        logger.info("App: %s", app)
        logger.info("Sheet: %s", settings.sheet_name)
        logger.info("Version: %s", args.version or "not provided")

        client = None
        if args.repo:
            client = github_source.GitHubClient(token=args.github_token or "", repo=args.repo)
        records = github_source.collect_issue_records(
            app,
            environment,
            jira_tickets=args.jira_tickets or "",
            base_tag=args.base_tag or "",
            head_tag=args.head_tag or "",
            client=client,
            sha=args.sha or "",
            prefix=settings.issue_prefix,
        )
        if not records:
            logger.info("No issue keys found. Nothing to sync.")
            return EXIT_OK

        store = build_client(settings.spreadsheet_id, settings.credentials or None)
        report = sync_issues(store, records, settings, version=args.version or "")
    except (
        SettingsError,
        SheetsClientError,
        CredentialsFileInvalidError,
        github_source.GitHubError,
    ) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILED

    print(f"Added {report.inserted} new, updated {report.updated} existing")
    if report.archived_as:
        print(f"Archived {settings.sheet_name!r} as {report.archived_as!r}")
    print(f"Sheet: {getattr(store, 'url', settings.spreadsheet_id)}")
    return EXIT_OK


def command_keys(args: argparse.Namespace) -> int:
    prefix = args.prefix or load_sync_settings().issue_prefix
    for key in extract_issue_keys(" ".join(args.text), prefix=prefix):
        print(key)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync deployed issues into the release tracking sheet")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Upsert issues and archive the sheet after production deploys")
    sync_parser.add_argument("--environment", required=True, help="internal, stage or production")
    sync_parser.add_argument("--app", required=True, help="web, admin or cm")
    sync_parser.add_argument("--spreadsheet-id", help="Google spreadsheet id, or a .json file for a local workbook")
    sync_parser.add_argument("--credentials", help="Service account JSON text or path")
    sync_parser.add_argument("--sheet-name", help="Active tab name (default: Next)")
    sync_parser.add_argument("--version", help="Release version written to the version cell")
    sync_parser.add_argument("--jira-tickets", help="Comma separated issue keys to sync")
    sync_parser.add_argument("--base-tag", help="Older tag of the compared range")
    sync_parser.add_argument("--head-tag", help="Newer tag of the compared range")
    sync_parser.add_argument("--repo", default=os.environ.get("GITHUB_REPOSITORY"), help="GitHub repository OWNER/NAME")
    sync_parser.add_argument("--github-token", default=os.environ.get("GITHUB_TOKEN"), help="GitHub API token")
    sync_parser.add_argument("--sha", default=os.environ.get("GITHUB_SHA"), help="Commit being deployed")
    sync_parser.add_argument("--settings", help="Optional JSON settings file")
    sync_parser.add_argument("--log-file", help="Also write the log to this file")
    sync_parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sync_parser.set_defaults(func=command_sync)

    keys_parser = subparsers.add_parser("keys", help="Print the issue keys found in TEXT")
    keys_parser.add_argument("text", nargs="+")
    keys_parser.add_argument("--prefix", help="Issue key prefix (default: ADV)")
    keys_parser.set_defaults(func=command_keys)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
