#!/usr/bin/env python3
"""
AI Form Detection

Fallback for the generic adapter when selector heuristics find nothing:
sends the page's form HTML to an OpenAI-compatible chat completions API
(Moonshot by default) and asks for a field -> CSS selector map.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

import aiohttp

from api.config import config
from core.models import Website, Directory, SubmissionContent

logger = logging.getLogger(__name__)

MAX_FORM_HTML_CHARS = 15000
MIN_FORM_HTML_CHARS = 50

ERROR_NO_API_KEY = "AI detection unavailable: No API key configured"
ERROR_NO_FORM = "No form elements found on page"
ERROR_INVALID_FORMAT = "AI returned invalid format"
ERROR_NO_FIELDS = "AI could not identify any form fields"

EXTRACT_FORM_HTML_JS = """
(maxChars) => {
    const forms = document.querySelectorAll('form');
    let html = '';
    if (forms.length > 0) {
        html = Array.from(forms).map(f => f.outerHTML).join('\\n');
    } else {
        const inputs = document.querySelectorAll('input, textarea, select');
        html = Array.from(inputs).map(i => i.outerHTML).join('\\n');
    }
    return html.substring(0, maxChars);
}
"""

CLEAR_VALUE_JS = """
(el) => {
    if (el.tagName === 'INPUT' || el.tagName === 'TEXTAREA') {
        el.value = '';
    }
}
"""


@dataclass
class FormDetectionResult:
    success: bool
    fields: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def field_names(self) -> List[str]:
        return [name for name in self.fields if name != "submit"]


def _extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """First {...} block in a model response, or None."""
    match = re.search(r"\{[\s\S]*\}", text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def build_prompt(website: Website, form_html: str) -> str:
    return f"""Analyze this HTML form and return CSS selectors for filling a website/startup submission form.

Website to submit:
- Name: {website.name}
- URL: {website.url}
- Email: {website.email or ''}
- Tagline: {website.tagline or ''}
- Description: {website.description_short or ''}

Form HTML:
{form_html}

Return ONLY a JSON object mapping field types to their CSS selectors. Only include fields you actually find in the HTML:
{{
  "name": "input#company-name",
  "url": "input[name='website']",
  "email": "input[type='email']",
  "tagline": "input[name='tagline']",
  "description": "textarea.description",
  "submit": "button[type='submit']"
}}

Rules:
- Use the most specific CSS selector possible (prefer id > name > class > type)
- Only include fields that actually exist in the HTML above
- Map common variations: "company", "startup", "product" -> name; "website", "link", "homepage" -> url
- For submit, find the submit button or input[type='submit']
- Return empty object {{}} if no matching fields found
- Do NOT include any explanation, only the JSON object"""


class FormDetector:
    """Thin chat-completions client specialised for form selector detection."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else config.FORM_AI_API_KEY
        self.base_url = (base_url or config.FORM_AI_BASE_URL).rstrip("/")
        self.model = model or config.FORM_AI_MODEL
        self.timeout = timeout or config.FORM_AI_TIMEOUT_SECONDS

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def _chat_completion(self, prompt: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": prompt}],
                    "temperature": 0.1,
                    "max_tokens": 1000,
                },
            ) as resp:
                resp.raise_for_status()
                data = await resp.json()
                return data["choices"][0]["message"]["content"]

    async def detect(self, page, website: Website, directory: Optional[Directory] = None) -> FormDetectionResult:
        if not self.available:
            return FormDetectionResult(False, error=ERROR_NO_API_KEY)

        try:
            form_html = await page.evaluate(EXTRACT_FORM_HTML_JS, MAX_FORM_HTML_CHARS)

            if not form_html or len(form_html) < MIN_FORM_HTML_CHARS:
                return FormDetectionResult(False, error=ERROR_NO_FORM)

            text = await self._chat_completion(build_prompt(website, form_html))

            fields = _extract_json_object(text)
            if fields is None:
                logger.info("  -> AI returned non-JSON response")
                return FormDetectionResult(False, error=ERROR_INVALID_FORMAT)

            fields = {str(k): str(v) for k, v in fields.items() if v}
            result = FormDetectionResult(True, fields=fields)
            if not result.field_names:
                return FormDetectionResult(False, error=ERROR_NO_FIELDS)

            logger.info(f"  -> AI detected {len(result.field_names)} fields: {', '.join(result.field_names)}")
            return result

        except Exception as e:
            logger.error(f"AI detection error: {e}")
            return FormDetectionResult(False, error=f"AI error: {e}")


async def detect_form_fields_with_ai(
    page,
    website: Website,
    directory: Optional[Directory] = None,
    detector: Optional[FormDetector] = None,
) -> FormDetectionResult:
    """Ask the model for selectors of the form on the current page."""
    return await (detector or FormDetector()).detect(page, website, directory)


async def fill_with_ai_selectors(
    page,
    fields: Dict[str, str],
    website: Website,
    content: Optional[SubmissionContent] = None,
) -> int:
    """
    Fill fields using AI-detected selectors.

    Returns:
        Number of fields successfully filled
    """
    values = {
        "name": website.name,
        "url": website.url,
        "email": website.email,
        "tagline": website.tagline,
        "description": (
            (content.long_description if content else None)
            or (content.short_description if content else None)
            or website.description_short
            or website.tagline
        ),
    }

    filled = 0

    for field_type, selector in fields.items():
        if field_type == "submit":
            continue

        value = values.get(field_type)
        if not value:
            logger.debug(f"    Skipping {field_type}: no value available")
            continue

        try:
            element = await page.query_selector(selector)
            if not element:
                logger.debug(f"    AI selector not found: {selector}")
                continue

            if not await element.is_visible():
                logger.debug(f"    AI selector not visible: {selector}")
                continue

            await element.click()
            await element.evaluate(CLEAR_VALUE_JS)
            await element.type(value, delay=30)

            filled += 1
            logger.info(f"    AI filled {field_type}: {selector}")
        except Exception as e:
            logger.warning(f"    AI selector failed ({field_type}): {e}")

    return filled
