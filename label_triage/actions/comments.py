"""Comment text for mention and message rules."""

import re
from typing import Any

from ..events.models import Event
from ..rules.models import CommentRule, MentionRule

PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")


def render_template(template: str, values: dict[str, Any]) -> str:
    """Replace ``{{ key }}`` placeholders; unknown keys are left untouched."""

    def repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values or values[key] is None:
            return match.group(0)
        return str(values[key])

    return PLACEHOLDER_RE.sub(repl, template)


class CommentGenerator:
    """Generates the comments posted by mention and message rules."""

    def __init__(self, rules_path: str = ".github/triage.yml") -> None:
        self.rules_path = rules_path

    def generate_mention_comment(self, rule: MentionRule, event: Event) -> str:
        """Generate a comment that cc's every subscriber of the rule's label.

        Args:
            rule: The subscription rule that matched
            event: The label-added event

        Returns:
            Formatted comment text ready for posting to GitHub
        """
        mentions = " ".join(f"@{login}" for login in rule.mentions)
        lines = [
            f"cc {mentions}",
            "",
            "<details>",
            "",
            f'This issue or pull request has been labeled: "{rule.label}"',
            "",
            "Thus the following users have been cc'd because of the following labels:",
            "",
        ]
        lines.extend(f"* {login}: {rule.label}" for login in rule.mentions)
        lines.extend(
            [
                "",
                "To subscribe or unsubscribe from this label, edit the "
                f"<code>{self.rules_path}</code> configuration file.",
                "",
                "</details>",
            ]
        )
        return "\n".join(lines)

    def generate_message_comment(self, rule: CommentRule, event: Event) -> str:
        """Render a message rule's template for the event's target."""
        return render_template(
            rule.template,
            {
                "label": rule.label,
                "number": event.target,
                "repository": event.repository,
                "actor": event.actor,
            },
        )
