# app/services/outreach/templates.py
"""
Donor outreach message rendering.

Templates are written by org admins (and optionally athletes) using
``{{ token }}`` placeholders:

- {{athleteName}}
- {{teamName}}
- {{campaignName}}
- {{donateUrl}}
- {{personalMessage}}

Only these five tokens are replaced; anything else, including other
``{{ ... }}`` or ``{% ... %}`` text, is left exactly as written. Jinja2 is
used only for the HTML layout around the rendered text.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

DEFAULT_DONOR_INVITE_TEMPLATE = """Hi there,

{{athleteName}} is fundraising with {{teamName}} for {{campaignName}}.
Every gift helps cover the season and keeps the team strong.

{{personalMessage}}

Donate here: {{donateUrl}}

Thank you for supporting our community."""

DRIP_SUBJECTS: Dict[str, str] = {
    "week1a": "Can you support our fundraiser?",
    "week1b": "A quick note from our team",
    "week2": "Thank you for supporting our season",
    "week3": "We are getting closer to our goal",
    "week4": "Last chance to support our fundraiser",
    "week5": "Final week to support our fundraiser",
}
FALLBACK_SUBJECT = "Fundraiser update"

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates"
_html_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class TemplateContext:
    athlete_name: Optional[str] = None
    team_name: Optional[str] = None
    campaign_name: Optional[str] = None
    donate_url: Optional[str] = None
    personal_message: Optional[str] = None

    def replacements(self) -> Dict[str, str]:
        return {
            "athleteName": self.athlete_name or "Our athlete",
            "teamName": self.team_name or "our team",
            "campaignName": self.campaign_name or "our fundraiser",
            "donateUrl": self.donate_url or "",
            "personalMessage": self.personal_message or "",
        }


def _token_pattern(key: str) -> "re.Pattern[str]":
    return re.compile(r"{{\s*" + re.escape(key) + r"\s*}}")


def _substitute_tokens(base: str, replacements: Dict[str, str]) -> str:
    # Single pass, so a substituted value is never scanned for tokens again
    pattern = re.compile(
        r"{{\s*(" + "|".join(re.escape(key) for key in replacements) + r")\s*}}"
    )
    return pattern.sub(lambda match: replacements[match.group(1)], base)


def render_invite_template(template: Optional[str], context: TemplateContext) -> str:
    """
    Render a donor outreach body as plain text.

    When the template has no slot for the personal message or the donate
    link, the value is appended so personalization still reaches the donor.
    """
    base = str(template or DEFAULT_DONOR_INVITE_TEMPLATE)
    replacements = context.replacements()

    output = _substitute_tokens(base, replacements)

    if not _token_pattern("personalMessage").search(base) and replacements["personalMessage"]:
        output = f"{output}\n\n{replacements['personalMessage']}"

    if not _token_pattern("donateUrl").search(base) and replacements["donateUrl"]:
        output = f"{output}\n\nDonate here: {replacements['donateUrl']}"

    return _EXCESS_BLANK_LINES.sub("\n\n", output).strip()


def render_html_body(
    text: str,
    *,
    subject: str = "",
    donate_url: Optional[str] = None,
    athlete_name: Optional[str] = None,
) -> str:
    """Wrap a rendered plain-text body in the HTML email layout."""
    template = _html_env.get_template("outreach_email.html")
    return template.render(
        subject=subject,
        lines=text.split("\n"),
        donate_url=donate_url,
        athlete_name=athlete_name or "our athlete",
    )


def resolve_phase_subject(phase_key: str, org_subjects: Optional[Dict[str, str]]) -> str:
    return (org_subjects or {}).get(phase_key) or DRIP_SUBJECTS.get(phase_key) or FALLBACK_SUBJECT


def resolve_phase_template(
    phase_key: str,
    *,
    athlete_templates: Optional[Dict[str, str]],
    org_templates: Optional[Dict[str, str]],
    org_default: Optional[str],
) -> str:
    """athlete override -> org per-phase -> org default -> built-in."""
    return (
        (athlete_templates or {}).get(phase_key)
        or (org_templates or {}).get(phase_key)
        or org_default
        or DEFAULT_DONOR_INVITE_TEMPLATE
    )
