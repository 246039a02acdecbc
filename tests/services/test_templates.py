"""
Tests for donor outreach message rendering.

Verifies:
1. Tokens are substituted, with or without inner whitespace
2. Missing values fall back to filler text
3. Personal message and donate link are appended when the template has no slot
4. Anything other than the five tokens is left as written, never evaluated
5. Subject and template precedence
6. The HTML layout escapes body text
"""

from app.services.outreach.templates import (
    DEFAULT_DONOR_INVITE_TEMPLATE,
    DRIP_SUBJECTS,
    FALLBACK_SUBJECT,
    TemplateContext,
    render_html_body,
    render_invite_template,
    resolve_phase_subject,
    resolve_phase_template,
)

CONTEXT = TemplateContext(
    athlete_name="Jordan Lee",
    team_name="Westview Wolves",
    campaign_name="Spring Season 2024",
    donate_url="https://fundraise.example.org/donate/cmp_1/athlete/ath_1",
)


class TestRenderInviteTemplate:

    def test_default_template_with_full_context(self):
        output = render_invite_template(None, CONTEXT)

        assert output.startswith("Hi there,")
        assert "Jordan Lee is fundraising with Westview Wolves for Spring Season 2024." in output
        assert f"Donate here: {CONTEXT.donate_url}" in output
        assert "{{" not in output

    def test_empty_personal_message_leaves_no_gap(self):
        output = render_invite_template(DEFAULT_DONOR_INVITE_TEMPLATE, CONTEXT)

        assert "\n\n\n" not in output

    def test_missing_values_use_fallbacks(self):
        output = render_invite_template(None, TemplateContext())

        assert "Our athlete is fundraising with our team for our fundraiser." in output

    def test_tokens_with_and_without_spaces(self):
        output = render_invite_template("{{ athleteName }} / {{teamName}}", TemplateContext(
            athlete_name="Sam", team_name="Hawks"
        ))

        assert output == "Sam / Hawks"

    def test_appends_personal_message_and_donate_link_without_slots(self):
        context = TemplateContext(
            athlete_name="Jordan Lee",
            donate_url="https://fundraise.example.org/donate/cmp_1",
            personal_message="Every dollar counts!",
        )

        output = render_invite_template("Please support {{athleteName}}.", context)

        assert output == (
            "Please support Jordan Lee.\n\n"
            "Every dollar counts!\n\n"
            "Donate here: https://fundraise.example.org/donate/cmp_1"
        )

    def test_does_not_append_donate_link_when_slot_present(self):
        output = render_invite_template("Give at {{ donateUrl }}", CONTEXT)

        assert output == f"Give at {CONTEXT.donate_url}"
        assert "Donate here" not in output

    def test_collapses_runs_of_blank_lines(self):
        output = render_invite_template("Hello\n\n\n\n\nBye", TemplateContext())

        assert output == "Hello\n\nBye"

    def test_block_tags_are_left_as_text(self):
        output = render_invite_template("Hi {{athleteName}}, {% if %}", CONTEXT)

        assert output.startswith("Hi Jordan Lee, {% if %}")
        assert output.endswith(f"Donate here: {CONTEXT.donate_url}")

    def test_expressions_and_unknown_tokens_are_not_evaluated(self):
        template = "Hi {{ 7*7 }} {{ cycler.__init__.__globals__.os.getcwd() }} {{ firstName }}"

        output = render_invite_template(template, TemplateContext(athlete_name="Ann"))

        assert output == template

    def test_substituted_values_are_not_rescanned(self):
        output = render_invite_template(
            "{{athleteName}} / {{teamName}}",
            TemplateContext(athlete_name="{{teamName}}", team_name="Wolves"),
        )

        assert output == "{{teamName}} / Wolves"


class TestResolution:

    def test_subject_org_override_wins(self):
        subject = resolve_phase_subject("week2", {"week2": "Halfway there!"})

        assert subject == "Halfway there!"

    def test_subject_defaults(self):
        assert resolve_phase_subject("week1a", None) == DRIP_SUBJECTS["week1a"]
        assert resolve_phase_subject("week1a", {"week1a": ""}) == DRIP_SUBJECTS["week1a"]
        assert resolve_phase_subject("manual", {}) == FALLBACK_SUBJECT

    def test_template_precedence(self):
        athlete_templates = {"week1a": "athlete week1a"}
        org_templates = {"week1a": "org week1a", "week2": "org week2"}

        def resolve(key, **overrides):
            kwargs = dict(
                athlete_templates=athlete_templates,
                org_templates=org_templates,
                org_default="org default",
            )
            kwargs.update(overrides)
            return resolve_phase_template(key, **kwargs)

        assert resolve("week1a") == "athlete week1a"
        assert resolve("week2") == "org week2"
        assert resolve("week3") == "org default"
        assert resolve("week3", org_default=None) == DEFAULT_DONOR_INVITE_TEMPLATE


class TestRenderHtmlBody:

    def test_escapes_text_and_renders_button(self):
        html = render_html_body(
            "<script>alert(1)</script>\n\nThanks",
            subject="Hello",
            donate_url="https://fundraise.example.org/donate/cmp_1",
            athlete_name="Jordan Lee",
        )

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "<br>" in html
        assert 'href="https://fundraise.example.org/donate/cmp_1"' in html
        assert "Support Jordan Lee" in html

    def test_no_button_without_donate_url(self):
        html = render_html_body("Thanks", subject="Hello")

        assert "href=" not in html
