"""CLI commands that run triage: one webhook delivery, a scan, or a timer loop."""

import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..actions.comments import CommentGenerator
from ..actions.models import ActionOutcome, RunReport
from ..config import TriageSettings
from ..dispatch.scheduler import Dispatcher, RunCancelled, RunHandle, RunState
from ..errors import ConfigError
from ..events.adapter import EventSourceAdapter
from ..github_client.client import GitHubClient
from ..pipeline import TriagePipeline
from ..rules.loader import load_rules
from ..rules.models import MentionRule, PathLabelRule, RuleSet
from .log_setup import configure_logging
from .options import (
    CONFIG_OPTION,
    DRY_RUN_OPTION,
    EVENT_NAME_OPTION,
    EVENT_PATH_OPTION,
    GROUP_OPTION,
    INTERVAL_OPTION,
    MAX_TICKS_OPTION,
    OFFSET_MINUTE_OPTION,
    REPO_OPTION,
    REPORT_FILE_OPTION,
    STRICT_OPTION,
    TOKEN_OPTION,
    VERBOSE_OPTION,
)

console = Console()

OUTCOME_STYLES = {
    ActionOutcome.APPLIED: "green",
    ActionOutcome.SKIPPED: "yellow",
    ActionOutcome.FAILED: "red",
}


def _load_settings(
    repo: str | None,
    config: str | None,
    token: str | None,
    group: str | None = None,
    require_token: bool = True,
) -> TriageSettings:
    settings = TriageSettings()
    if repo:
        settings.repository = repo
    if config:
        settings.rules_path = Path(config)
    if token:
        settings.token = token
    if group:
        settings.concurrency_group = group
    settings.validate(require_token=require_token)
    return settings


def _build_pipeline(
    settings: TriageSettings, rules: RuleSet, dry_run: bool
) -> TriagePipeline:
    org, name = settings.split_repository()
    client = GitHubClient(token=settings.token, timeout=settings.api_timeout)
    return TriagePipeline(
        client,
        org,
        name,
        rules,
        adapter=EventSourceAdapter(allowed_repository=settings.allowed_repository),
        dry_run=dry_run,
        max_workers=settings.max_workers,
        comments=CommentGenerator(rules_path=settings.rules_path.as_posix()),
    )


def _config_error(e: ConfigError) -> typer.Exit:
    console.print(f"❌ [red]Configuration error: {escape(str(e))}[/red]")
    return typer.Exit(2)


def print_report(report: RunReport) -> None:
    """Render a run report as a table followed by totals."""
    if report.results:
        table = Table(title=f"Triage Results ({report.trigger})")
        table.add_column("Target", style="cyan", justify="right")
        table.add_column("Rule", style="magenta")
        table.add_column("Action", style="white")
        table.add_column("Outcome")
        table.add_column("Error", style="red")

        for result in report.results:
            style = OUTCOME_STYLES[result.outcome]
            table.add_row(
                f"#{result.target}",
                result.rule_id,
                escape(result.detail),
                f"[{style}]{result.outcome.value}[/{style}]",
                escape(result.error or ""),
            )
        console.print(table)

    prefix = "Dry run: " if report.dry_run else ""
    console.print(
        f"{prefix}Run {report.run_id}: {report.events_processed} event(s), "
        f"{report.count(ActionOutcome.APPLIED)} applied, "
        f"{report.count(ActionOutcome.SKIPPED)} skipped, "
        f"{report.count(ActionOutcome.FAILED)} failed"
    )
    for error in report.errors:
        console.print(f"⚠️  [yellow]{escape(error)}[/yellow]")


def _finish(report: RunReport, report_file: str | None, strict: bool) -> None:
    print_report(report)
    if report_file:
        Path(report_file).write_text(report.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"📝 Report written to {report_file}")
    if strict and (report.has_failures or report.errors):
        raise typer.Exit(1)


def run(
    event_name: str = EVENT_NAME_OPTION,
    event_path: str = EVENT_PATH_OPTION,
    repo: str | None = REPO_OPTION,
    config: str | None = CONFIG_OPTION,
    token: str | None = TOKEN_OPTION,
    group: str | None = GROUP_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    strict: bool = STRICT_OPTION,
    report_file: str | None = REPORT_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Triage one webhook delivery.

    In GitHub Actions the event name and payload path come from
    GITHUB_EVENT_NAME and GITHUB_EVENT_PATH.

    Examples:
        # Preview what a labeled event would trigger
        label-triage run -e issues -p event.json --repo myorg/myrepo --dry-run
    """
    try:
        configure_logging(verbose)
        settings = _load_settings(repo, config, token, group)
        rules = load_rules(settings.rules_path)
    except ConfigError as e:
        raise _config_error(e)

    pipeline = _build_pipeline(settings, rules, dry_run)
    with Dispatcher(max_concurrent_runs=1) as dispatcher:
        try:
            report = dispatcher.run(
                settings.concurrency_group,
                pipeline.event_file_job(event_name, Path(event_path)),
            )
        except RunCancelled as e:
            console.print(f"⚠️  [yellow]{escape(str(e))}[/yellow]")
            return

    _finish(report, report_file, strict)


def scan(
    repo: str | None = REPO_OPTION,
    config: str | None = CONFIG_OPTION,
    token: str | None = TOKEN_OPTION,
    group: str | None = GROUP_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    strict: bool = STRICT_OPTION,
    report_file: str | None = REPORT_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Scan every open pull request once and apply path labels."""
    try:
        configure_logging(verbose)
        settings = _load_settings(repo, config, token, group)
        rules = load_rules(settings.rules_path)
    except ConfigError as e:
        raise _config_error(e)

    pipeline = _build_pipeline(settings, rules, dry_run)
    with Dispatcher(max_concurrent_runs=1) as dispatcher:
        try:
            report = dispatcher.run(settings.concurrency_group, pipeline.schedule_job())
        except RunCancelled as e:
            console.print(f"⚠️  [yellow]{escape(str(e))}[/yellow]")
            return

    _finish(report, report_file, strict)


def seconds_until_next(now: datetime, interval: int, offset_minute: int) -> float:
    """Seconds from ``now`` until the next fire of an aligned timer.

    Fires happen at ``offset_minute`` past the hour and every ``interval``
    seconds from there.
    """
    anchor = now.replace(minute=offset_minute, second=0, microsecond=0)
    if anchor > now:
        anchor -= timedelta(hours=1)
    elapsed = (now - anchor).total_seconds()
    return interval - (elapsed % interval)


def _report_finished(handle: RunHandle) -> None:
    state = handle.wait()
    if state is RunState.COMPLETED:
        print_report(handle.result())
    elif state is RunState.CANCELLED:
        console.print(f"⏭️  Run {handle.token.run_id} was superseded by a newer run")
    else:
        console.print(f"❌ [red]Run {handle.token.run_id} failed (see log)[/red]")


def watch(
    repo: str | None = REPO_OPTION,
    config: str | None = CONFIG_OPTION,
    token: str | None = TOKEN_OPTION,
    group: str | None = GROUP_OPTION,
    interval: int = INTERVAL_OPTION,
    offset_minute: int = OFFSET_MINUTE_OPTION,
    max_ticks: int | None = MAX_TICKS_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Run scheduled scans on an hourly timer.

    Each timer fire starts a scan in the concurrency group. A scan still
    running when the next one fires is cancelled in favour of the new one.
    """
    if interval < 1:
        console.print("❌ [red]Error: --interval must be at least 1 second[/red]")
        raise typer.Exit(2)

    try:
        configure_logging(verbose)
        settings = _load_settings(repo, config, token, group)
        rules = load_rules(settings.rules_path)
    except ConfigError as e:
        raise _config_error(e)

    pipeline = _build_pipeline(settings, rules, dry_run)
    console.print(
        f"⏰ [blue]Scanning {settings.repository} every {interval}s "
        f"at minute {offset_minute:02d}[/blue]"
    )

    ticks = 0
    handles: list[RunHandle] = []
    with Dispatcher(max_concurrent_runs=2) as dispatcher:
        try:
            while max_ticks is None or ticks < max_ticks:
                delay = seconds_until_next(
                    datetime.now(timezone.utc), interval, offset_minute
                )
                time.sleep(delay)
                handles.append(
                    dispatcher.start(settings.concurrency_group, pipeline.schedule_job())
                )
                ticks += 1

                # Report runs that have already finished
                while handles and handles[0].done():
                    _report_finished(handles.pop(0))
        except KeyboardInterrupt:
            console.print("🛑 Stopping timer")

        for handle in handles:
            _report_finished(handle)


def check_config(
    config: str | None = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Validate the rule file and list the rules it defines."""
    try:
        configure_logging(verbose)
        settings = TriageSettings()
        if config:
            settings.rules_path = Path(config)
        rules = load_rules(settings.rules_path)
    except ConfigError as e:
        raise _config_error(e)

    table = Table(title=f"Rules in {settings.rules_path}")
    table.add_column("Rule", style="cyan")
    table.add_column("Label", style="magenta")
    table.add_column("Action", style="white")
    table.add_column("Details", style="green")

    for rule in rules.rules:
        if isinstance(rule, PathLabelRule):
            details = escape(", ".join(rule.paths))
        elif isinstance(rule, MentionRule):
            details = " ".join(f"@{login}" for login in rule.mentions)
        else:
            details = escape(rule.template)
        table.add_row(rule.id, rule.label, rule.kind.value, details)

    console.print(table)
    console.print(f"✅ [green]{len(rules)} rule(s) are valid[/green]")
