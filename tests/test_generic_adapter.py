"""
Tests for the generic adapter, shared adapter helpers and the registry.
"""

from unittest.mock import AsyncMock

import pytest

from adapters import (
    BetaListAdapter,
    GenericAdapter,
    check_success,
    extract_twitter_handle,
    get_adapter,
    get_field_value,
    list_adapters,
)
from adapters.generic import AUTO_DETECT_FAILED
from ai.form_detection import ERROR_NO_API_KEY, FormDetector
from tests.fakes import FakeElement, FakePage

FORM_HTML = '<form><input id="fld-a"><input id="fld-b"><button id="go" type="submit">Go</button></form>'


def _no_ai() -> FormDetector:
    return FormDetector(api_key="")


@pytest.mark.adapters
class TestConfiguredForm:

    @pytest.mark.asyncio
    async def test_fills_mapped_fields_and_clicks_configured_submit(
        self, no_delays, sample_website, configured_directory, sample_content
    ):
        page = FakePage(
            elements=[
                FakeElement(id="n"),
                FakeElement(id="u"),
                FakeElement(tag="button", id="s", text="Send", submits=True),
            ],
            result_url="https://configured.example/thanks",
            result_html="<p>Thank you, your listing is pending review.</p>",
        )

        result = await GenericAdapter(detector=_no_ai()).submit(
            page, sample_website, configured_directory, sample_content
        )

        assert page.goto_calls == ["https://configured.example/new"]
        assert page.element("n").value == "Acme Analytics"
        assert page.element("u").value == "https://acme.example"
        assert "s" in page.clicks
        assert result.success
        assert result.confirmation_url == "https://configured.example/thanks"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_unconfirmed_submission(self, no_delays, sample_website, configured_directory, sample_content):
        page = FakePage(
            elements=[FakeElement(id="n"), FakeElement(id="u"), FakeElement(tag="button", id="s", submits=True)],
            result_html="<p>Error: URL is invalid</p>",
        )

        result = await GenericAdapter(detector=_no_ai()).submit(
            page, sample_website, configured_directory, sample_content
        )

        assert not result.success
        assert result.error == "Could not confirm submission"

    @pytest.mark.asyncio
    async def test_missing_configured_field_does_not_abort(
        self, no_delays, sample_website, configured_directory, sample_content
    ):
        page = FakePage(
            elements=[FakeElement(id="u"), FakeElement(tag="button", id="s", submits=True)],
            result_html="Submitted!",
        )

        result = await GenericAdapter(detector=_no_ai()).submit(
            page, sample_website, configured_directory, sample_content
        )

        assert page.element("u").value == "https://acme.example"
        assert result.success


@pytest.mark.adapters
class TestAutoDetection:

    @pytest.mark.asyncio
    async def test_heuristics_fill_visible_fields(self, no_delays, sample_website, sample_directory, sample_content):
        page = FakePage(
            elements=[
                FakeElement(name="company_name"),
                FakeElement(name="website"),
                FakeElement(tag="button", type="submit", text="Submit"),
            ],
            result_url="https://launchlist.example/thanks",
        )

        result = await GenericAdapter(detector=_no_ai()).submit(page, sample_website, sample_directory, sample_content)

        assert page.goto_calls == ["https://launchlist.example/submit"]
        # Matched by several synonyms; clearing keeps a single copy of the value
        assert page.element("company_name").value == "Acme Analytics"
        assert page.element("website").value == "https://acme.example"
        assert page.submitted
        assert result.success

    @pytest.mark.asyncio
    async def test_enter_is_pressed_without_submit_button(
        self, no_delays, sample_website, sample_directory, sample_content
    ):
        page = FakePage(
            elements=[FakeElement(name="email")],
            result_html="Thanks for submitting",
        )

        result = await GenericAdapter(detector=_no_ai()).submit(page, sample_website, sample_directory, sample_content)

        assert page.element("email").value == "hello@acme.example"
        assert page.keyboard.pressed[-1] == "Enter"
        assert result.success

    @pytest.mark.asyncio
    async def test_off_screen_fields_are_ignored(self, no_delays, sample_website, sample_directory, sample_content):
        page = FakePage(elements=[FakeElement(name="name", in_viewport=False)])

        result = await GenericAdapter(detector=_no_ai()).submit(page, sample_website, sample_directory, sample_content)

        assert page.element("name").value == ""
        assert not result.success
        assert result.error == ERROR_NO_API_KEY

    @pytest.mark.asyncio
    async def test_nothing_detected_reports_auto_detect_failure(
        self, no_delays, sample_website, sample_directory, sample_content
    ):
        detector = FormDetector(api_key="test-key")
        detector._chat_completion = AsyncMock()
        page = FakePage(elements=[], form_html="")

        result = await GenericAdapter(detector=detector).submit(page, sample_website, sample_directory, sample_content)

        assert not result.success
        assert result.error == AUTO_DETECT_FAILED
        detector._chat_completion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ai_fallback_fills_detected_selectors(
        self, no_delays, sample_website, sample_directory, sample_content
    ):
        detector = FormDetector(api_key="test-key")
        detector._chat_completion = AsyncMock(
            return_value='Sure! {"name": "#fld-a", "url": "#fld-b", "submit": "#go"}'
        )
        page = FakePage(
            elements=[
                FakeElement(id="fld-a"),
                FakeElement(id="fld-b"),
                FakeElement(tag="button", id="go", type="submit"),
            ],
            form_html=FORM_HTML,
            result_url="https://launchlist.example/thank-you",
        )

        result = await GenericAdapter(detector=detector).submit(page, sample_website, sample_directory, sample_content)

        assert page.element("fld-a").value == "Acme Analytics"
        assert page.element("fld-b").value == "https://acme.example"
        assert result.success
        prompt = detector._chat_completion.await_args.args[0]
        assert "Acme Analytics" in prompt and FORM_HTML in prompt

    @pytest.mark.asyncio
    async def test_ai_selectors_that_match_nothing(self, no_delays, sample_website, sample_directory, sample_content):
        detector = FormDetector(api_key="test-key")
        detector._chat_completion = AsyncMock(return_value='{"name": "#missing"}')
        page = FakePage(elements=[], form_html=FORM_HTML)

        result = await GenericAdapter(detector=detector).submit(page, sample_website, sample_directory, sample_content)

        assert not result.success
        assert result.error == AUTO_DETECT_FAILED


@pytest.mark.adapters
class TestAdapterHelpers:

    def test_get_field_value(self, sample_website, sample_content):
        assert get_field_value("Company_Name", sample_website) == "Acme Analytics"
        assert get_field_value("homepage", sample_website) == "https://acme.example"
        assert get_field_value("contact", sample_website) == "hello@acme.example"
        assert get_field_value("tagline", sample_website, sample_content) == "Analytics for small teams"
        assert get_field_value("about", sample_website, sample_content).startswith("Acme gives")
        assert get_field_value("linkedin", sample_website) is None
        assert get_field_value("favourite_colour", sample_website) is None

    @pytest.mark.parametrize("url, html, expected", [
        ("https://x.example/thanks", "", True),
        ("https://x.example/form", "Your submission was received", True),
        ("https://x.example/form", "Error: name is required", False),
        ("https://x.example/form", "Success! Fields marked required were saved", True),
        ("https://x.example/form", "<form></form>", False),
    ])
    def test_check_success(self, url, html, expected):
        assert check_success(url, html) is expected

    @pytest.mark.parametrize("value, expected", [
        ("https://twitter.com/acmehq", "@acmehq"),
        ("https://x.com/acmehq?ref=site", "@acmehq"),
        ("@acmehq", "@acmehq"),
        ("acmehq", "@acmehq"),
        (None, None),
    ])
    def test_extract_twitter_handle(self, value, expected):
        assert extract_twitter_handle(value) == expected

    @pytest.mark.asyncio
    async def test_fill_field_reports_missing_selector(self, no_delays):
        page = FakePage(elements=[])
        assert await GenericAdapter().fill_field(page, "#nope", "value") is False
        assert await GenericAdapter().fill_field(page, "#nope", "") is False


@pytest.mark.adapters
class TestSubmitForm:

    @pytest.mark.asyncio
    async def test_waits_for_navigation_armed_before_click(self):
        page = FakePage(
            elements=[FakeElement(tag="button", id="go", type="submit")],
            result_url="https://directory.example/thanks",
        )

        assert await GenericAdapter().submit_form(page) is True
        assert page.events == ["expect_navigation:networkidle", "click:go", "navigated"]
        assert page.url == "https://directory.example/thanks"

    @pytest.mark.asyncio
    async def test_in_page_response_is_not_a_failure(self):
        page = FakePage(elements=[FakeElement(tag="button", id="go", type="submit")])

        assert await GenericAdapter().submit_form(page) is True
        assert page.events == ["expect_navigation:networkidle", "click:go", "navigation_timeout"]

    @pytest.mark.asyncio
    async def test_missing_button_skips_the_wait(self):
        page = FakePage(elements=[])

        assert await GenericAdapter().submit_form(page) is False
        assert page.events == []


@pytest.mark.adapters
class TestRegistry:

    def test_known_names(self):
        assert set(list_adapters()) == {"generic", "betalist", "producthunt", "crunchbase", "indiehackers"}

    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_adapter("BetaList"), BetaListAdapter)

    @pytest.mark.parametrize("name", [None, "", "does-not-exist"])
    def test_unknown_names_fall_back_to_generic(self, name):
        assert isinstance(get_adapter(name), GenericAdapter)
