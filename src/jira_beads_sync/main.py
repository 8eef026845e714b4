"""CLI entrypoint for jira-beads-sync.

Fetches Jira task trees, converts them to beads issues/epics and writes them
under `.beads/` in the output directory.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from jira_beads_sync import __version__
from jira_beads_sync.beads.renderer import JsonlRenderer, Renderer, YamlRenderer
from jira_beads_sync.config import Settings, default_config_path, save_config_file
from jira_beads_sync.errors import ConfigurationError, SyncError
from jira_beads_sync.jira.client import (
    JiraClient,
    base_url_from_issue_url,
    is_url,
    parse_issue_key_from_url,
)
from jira_beads_sync.logging import configure_logging
from jira_beads_sync.pipeline import SyncPipeline, SyncSummary

logger = logging.getLogger(__name__)

FORMATS = ("yaml", "jsonl")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jira-beads-sync",
        description="Convert Jira task trees to beads issues",
    )
    parser.add_argument("--version", action="version", version=f"jira-beads-sync {__version__}")

    output = argparse.ArgumentParser(add_help=False)
    output.add_argument(
        "--output-dir",
        default=None,
        help="Directory that receives the .beads/ folder (defaults to the current directory)",
    )
    output.add_argument(
        "--format",
        choices=FORMATS,
        default=None,
        help="Output layout: yaml (one file per entity) or jsonl (one file per kind)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    quickstart = subparsers.add_parser(
        "quickstart",
        aliases=["fetch"],
        parents=[output],
        help="Fetch an issue and everything it depends on, then convert to beads",
    )
    quickstart.add_argument("target", help="Jira issue URL or key, e.g. PROJ-123")

    by_label = subparsers.add_parser(
        "fetch-by-label",
        aliases=["label"],
        parents=[output],
        help="Fetch all issues carrying a label, plus their dependencies",
    )
    by_label.add_argument("label", help="Jira label")
    by_label.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of warning when the search matches more issues than can be retrieved",
    )

    by_query = subparsers.add_parser(
        "fetch-by-query",
        aliases=["query"],
        parents=[output],
        help="Fetch all issues matching a JQL query, plus their dependencies",
    )
    by_query.add_argument("jql", help="JQL query")
    by_query.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of warning when the search matches more issues than can be retrieved",
    )

    convert = subparsers.add_parser(
        "convert",
        parents=[output],
        help="Convert a Jira export JSON file (no network access)",
    )
    convert.add_argument("file", help="Path to a Jira export file")

    annotate = subparsers.add_parser(
        "annotate",
        parents=[output],
        help="Record a source repository on a converted beads issue",
    )
    annotate.add_argument("issue_id", help="beads issue id, e.g. proj-123")
    annotate.add_argument("repository", help="Repository URL or name")

    configure = subparsers.add_parser(
        "configure",
        aliases=["config"],
        help="Prompt for Jira credentials and save them to the config file",
    )
    configure.add_argument(
        "--check",
        action="store_true",
        help="Validate the stored credentials against Jira instead of prompting",
    )

    subparsers.add_parser("version", help="Show version information")

    return parser


def _renderer(args: argparse.Namespace, *, default_format: str) -> Renderer:
    output_dir = Path(args.output_dir) if args.output_dir else Path.cwd()
    fmt = args.format or default_format
    if fmt == "jsonl":
        return JsonlRenderer(output_dir)
    return YamlRenderer(output_dir)


def _jira_client(settings: Settings, *, base_url: str | None = None) -> JiraClient:
    return JiraClient(
        base_url=base_url or settings.jira_base_url,
        username=settings.jira_username,
        api_token=settings.jira_api_token,
        max_results=settings.jira_search_max_results,
    )


def _prompt_for_credentials() -> Path:
    print("Jira Configuration")
    print("==================")
    base_url = input("Jira Base URL (e.g., https://jira.example.com): ").strip()
    username = input("Jira Username/Email: ").strip()
    api_token = getpass.getpass("Jira API Token: ").strip()

    missing = [
        name
        for name, value in (
            ("base URL", base_url),
            ("username", username),
            ("API token", api_token),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Jira {', '.join(missing)} required")

    return save_config_file(
        default_config_path(), base_url=base_url, username=username, api_token=api_token
    )


def _ensure_jira_settings(settings: Settings, *, base_url_override: str | None = None) -> Settings:
    """Return settings with Jira credentials, prompting once on an interactive terminal."""

    missing = settings.missing_jira_settings()
    if base_url_override:
        missing = [m for m in missing if m != "JIRA_BASE_URL"]
    if not missing:
        return settings

    if not sys.stdin.isatty():
        settings.require_jira()

    print("No Jira configuration found. Let's set it up!")
    path = _prompt_for_credentials()
    print(f"Configuration saved to {path}")
    reloaded = Settings()
    reloaded.require_jira()
    return reloaded


def _print_summary(summary: SyncSummary) -> None:
    if summary.truncated:
        print("Warning: search results were truncated; some matching issues were not imported")
    print(f"Fetched/loaded {len(summary.fetched_keys)} issue(s)")
    print(f"  {summary.epics} epic(s) and {summary.issues} issue(s) written to {summary.output_dir}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"jira-beads-sync v{__version__}")
        return 0

    try:
        settings = Settings()
    except (ValidationError, ConfigurationError) as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your environment, .env or config file):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_format)

    try:
        if args.command in ("quickstart", "fetch"):
            key = args.target
            base_url = None
            if is_url(args.target):
                key = parse_issue_key_from_url(args.target)
                base_url = base_url_from_issue_url(args.target)
            settings = _ensure_jira_settings(settings, base_url_override=base_url)

            client = _jira_client(settings, base_url=base_url)
            try:
                pipeline = SyncPipeline(
                    source=client, renderer=_renderer(args, default_format="yaml")
                )
                print(f"Fetching {key} and its dependencies from {client.base_url}...")
                summary = pipeline.sync_issue(key)
            finally:
                client.close()
            _print_summary(summary)
            return 0

        if args.command in ("fetch-by-label", "label", "fetch-by-query", "query"):
            settings = _ensure_jira_settings(settings)

            client = _jira_client(settings)
            try:
                pipeline = SyncPipeline(
                    source=client, renderer=_renderer(args, default_format="yaml")
                )
                if args.command in ("fetch-by-label", "label"):
                    print(f"Searching for issues with label: {args.label}")
                    summary = pipeline.sync_label(args.label, strict=args.strict)
                else:
                    print(f"Searching for issues matching: {args.jql}")
                    summary = pipeline.sync_query(args.jql, strict=args.strict)
            finally:
                client.close()
            _print_summary(summary)
            return 0

        if args.command == "convert":
            pipeline = SyncPipeline(renderer=_renderer(args, default_format="jsonl"))
            print(f"Converting {args.file} to beads format...")
            summary = pipeline.convert_file(Path(args.file))
            _print_summary(summary)
            return 0

        if args.command == "annotate":
            renderer = _renderer(args, default_format="yaml")
            renderer.add_repository_annotation(args.issue_id, args.repository)
            print(f"Added repository '{args.repository}' to issue {args.issue_id}")
            return 0

        if args.command in ("configure", "config"):
            if args.check:
                settings.require_jira()
                client = _jira_client(settings)
                try:
                    user = client.get_current_user()
                finally:
                    client.close()
                print(f"Authenticated as {user.display_name or user.email_address or user.account_id}")
                return 0

            path = _prompt_for_credentials()
            print(f"Configuration saved to {path}")
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    except SyncError as e:
        logger.error(str(e), extra={"key": e.key, "error": type(e).__name__})
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
