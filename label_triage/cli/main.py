"""Main CLI entry point."""

import typer
from rich.console import Console

from .triage import check_config, run, scan, watch

app = typer.Typer(
    name="label-triage",
    help="Label-driven triage for GitHub issues and pull requests",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


app.command(name="run", context_settings={"help_option_names": ["-h", "--help"]})(run)
app.command(name="scan", context_settings={"help_option_names": ["-h", "--help"]})(
    scan
)
app.command(name="watch", context_settings={"help_option_names": ["-h", "--help"]})(
    watch
)
app.command(
    name="check-config", context_settings={"help_option_names": ["-h", "--help"]}
)(check_config)


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def version() -> None:
    """Show version information."""
    from label_triage import __version__

    console.print(f"Label Triage v{__version__}")


if __name__ == "__main__":
    app()
