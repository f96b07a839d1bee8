"""Option definitions shared by the triage commands.

Shorthands are defined once here so every command spells them the same way.
"""

import typer

# Core options - used across most commands
REPO_OPTION = typer.Option(
    None,
    "--repo",
    "-r",
    envvar="GITHUB_REPOSITORY",
    help="Repository in owner/name format (defaults to GITHUB_REPOSITORY)",
)

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Rule file path (defaults to TRIAGE_CONFIG or .github/triage.yml)",
)

# Authentication options
TOKEN_OPTION = typer.Option(
    None, "--token", "-t", help="GitHub API token (defaults to GITHUB_TOKEN env var)"
)

# Trigger options
EVENT_NAME_OPTION = typer.Option(
    ...,
    "--event-name",
    "-e",
    envvar="GITHUB_EVENT_NAME",
    help="Webhook event name, e.g. issues or pull_request",
)

EVENT_PATH_OPTION = typer.Option(
    ...,
    "--event-path",
    "-p",
    envvar="GITHUB_EVENT_PATH",
    help="Path to the webhook payload JSON",
)

# Behavior options - control command behavior
DRY_RUN_OPTION = typer.Option(
    False, "--dry-run", "-d", help="Preview actions without applying them"
)

STRICT_OPTION = typer.Option(
    False, "--strict", help="Exit with status 1 when any action failed"
)

REPORT_FILE_OPTION = typer.Option(
    None, "--report-file", help="Write the run report as JSON to this path"
)

VERBOSE_OPTION = typer.Option(
    False, "--verbose", "-v", help="Enable debug logging (also RUNNER_DEBUG=1)"
)

GROUP_OPTION = typer.Option(
    None,
    "--group",
    "-g",
    help="Concurrency group (defaults to TRIAGE_CONCURRENCY_GROUP or issue-triage)",
)

# Timer options
INTERVAL_OPTION = typer.Option(
    3600, "--interval", help="Seconds between scheduled scans"
)

OFFSET_MINUTE_OPTION = typer.Option(
    42,
    "--offset-minute",
    min=0,
    max=59,
    help="Minute past the hour scans are aligned to",
)

MAX_TICKS_OPTION = typer.Option(
    None, "--max-ticks", help="Stop after this many scans (runs forever by default)"
)
