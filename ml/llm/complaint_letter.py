"""
Complaint letter generation.

Drafts a formal complaint about overcharged items on an audited bill,
optionally including what the patient said in a voice note.
Falls back to a fixed template when the model is unavailable.
"""

import logging
import re
from datetime import datetime
from typing import Any, Optional, Union

from ml.llm.llm_wrapper import LLMProvider, get_drafting_provider

logger = logging.getLogger(__name__)

NO_COMPLAINT_MESSAGE = "All charges are verified. No complaint is necessary."
UNKNOWN_PATIENT = "Patient Name Not Available"
NOT_SPECIFIED = "Not specified"

COMPLAINT_PROMPT_TEMPLATE = """You are a legal medical complaint writer for Indian patients.

TASK:
Generate a FORMAL LEGAL MEDICAL COMPLAINT in plain text ONLY. No markdown, no emojis, no JSON, no code blocks.

PATIENT NAME:
{patient_name}

PATIENT VOICE INPUT (optional):
{spoken_text}

AUDIT RESULTS:
Hospital: {hospital_name}
City: {city}
Bill Date: {bill_date}
Total Amount: ₹{total_amount}
Potential Savings: ₹{total_savings}

Overpriced Items:
{overpriced_items}

REQUIREMENTS:
- Use a polite but firm legal tone.
- Address: Hospital Administration / District Consumer Forum.
- Start with: "From: {patient_name}"
- Mention OVERCHARGING explicitly.
- Include PATIENT GRIEVANCE.
- Request REFUND / INVESTIGATION.
- List specific overpriced items.
- Include PATIENT VOICE input if provided.
- End with: "Yours faithfully," followed by {patient_name} on the next line.
- NEVER use placeholders like [Patient's Name]. Always use the exact patient name provided.

Return ONLY the letter text, no additional commentary."""

_PLACEHOLDER_PATTERN = re.compile(r"\{patient_name\}|\[Patient'?s? Name\]", re.IGNORECASE)
_FROM_PATTERN = re.compile(r"^From:\s*[^\n]+", re.IGNORECASE)
_CLOSING_PATTERN = re.compile(r"Yours\s+faithfully,?\s*\n\s*[^\n]+", re.IGNORECASE)


def _as_dict(audit_result: Any) -> dict:
    if hasattr(audit_result, "to_dict"):
        return audit_result.to_dict()
    return dict(audit_result or {})


def _patient_name(audit: dict) -> str:
    name = audit.get("patient_name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return UNKNOWN_PATIENT


def get_flagged_items(audit: dict) -> list[dict]:
    """Flagged line items from an audit result dict."""
    items = audit.get("line_items") or audit.get("items") or []
    return [
        item for item in items
        if isinstance(item, dict) and (item.get("flagged") or item.get("is_overpriced"))
    ]


def _format_items_for_prompt(items: list[dict]) -> str:
    """
    Format overpriced items as prompt lines.

    Args:
        items: Flagged line items.

    Returns:
        str: One "- service: Charged ₹x, Fair Price ₹y" line per item.
    """
    lines = []
    for item in items:
        service = item.get("service") or item.get("name") or "Unknown service"
        price = item.get("price") or item.get("charged_price") or 0
        standard_price = (
            item.get("standard_price") or item.get("fair_price") or round(price * 0.7)
        )
        lines.append(f"- {service}: Charged ₹{price}, Fair Price ₹{standard_price}")
    return "\n".join(lines)


def _build_complaint_prompt(audit: dict, flagged: list[dict], transcript: str) -> str:
    return COMPLAINT_PROMPT_TEMPLATE.format(
        patient_name=_patient_name(audit),
        spoken_text=transcript.strip() if transcript else "No voice input provided",
        hospital_name=audit.get("hospital_name") or NOT_SPECIFIED,
        city=audit.get("city") or NOT_SPECIFIED,
        bill_date=audit.get("bill_date") or NOT_SPECIFIED,
        total_amount=audit.get("total_amount") or 0,
        total_savings=audit.get("potential_savings") or 0,
        overpriced_items=_format_items_for_prompt(flagged),
    )


def _clean_complaint_response(response: str) -> str:
    """
    Strip markdown fences and preambles from a model response.

    Args:
        response: Raw LLM response.

    Returns:
        str: Letter text.
    """
    prefixes_to_remove = [
        "Here's the complaint:",
        "Here is the complaint:",
        "Here is the letter:",
        "Here's the letter:",
    ]

    response = (response or "").strip()
    for prefix in prefixes_to_remove:
        if response.lower().startswith(prefix.lower()):
            response = response[len(prefix):].strip()

    if response.startswith("```"):
        lines = response.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        response = "\n".join(lines)

    return response.strip()


def _enforce_patient_name(letter: str, patient_name: str) -> str:
    """Fill placeholders and make sure the letter opens and closes with the patient's name."""
    letter = _PLACEHOLDER_PATTERN.sub(lambda _: patient_name, letter)

    if _FROM_PATTERN.search(letter):
        letter = _FROM_PATTERN.sub(lambda _: f"From: {patient_name}", letter, count=1)
    else:
        letter = f"From: {patient_name}\n\n{letter}"

    if _CLOSING_PATTERN.search(letter):
        letter = _CLOSING_PATTERN.sub(
            lambda _: f"Yours faithfully,\n{patient_name}", letter, count=1
        )
    else:
        letter = f"{letter}\n\nYours faithfully,\n{patient_name}"

    return letter


def _generate_fallback_complaint(audit: dict, flagged: list[dict], transcript: str) -> str:
    """
    Generate a complaint without the LLM.

    Args:
        audit: Audit result dict.
        flagged: Flagged line items.
        transcript: Patient's spoken input, may be empty.

    Returns:
        str: Template-based complaint.
    """
    logger.info("Generating fallback complaint (no LLM)")

    patient_name = _patient_name(audit)
    today = datetime.now().strftime("%d %B %Y")
    hospital = audit.get("hospital_name") or NOT_SPECIFIED
    savings = audit.get("potential_savings") or 0
    total = audit.get("total_amount") or 0

    voice_section = ""
    if transcript and transcript.strip():
        voice_section = f"\nIn the patient's own words:\n\"{transcript.strip()}\"\n"

    return f"""From: {patient_name}

Date: {today}

To,
The Hospital Administration, {hospital}
Copy to: The District Consumer Disputes Redressal Forum, {audit.get('city') or NOT_SPECIFIED}

Subject: Complaint regarding overcharging on bill dated {audit.get('bill_date') or NOT_SPECIFIED}

Respected Sir/Madam,

I am writing to formally complain about overcharging on my hospital bill totalling ₹{total}. An audit of the bill against standard rates found the following items charged well above fair prices:

{_format_items_for_prompt(flagged)}

The excess charged on these items amounts to ₹{savings}.
{voice_section}
I request a detailed explanation of these charges, a refund of the excess amount, and an investigation into the billing practices that led to them. I expect a written response within 30 days.

Yours faithfully,
{patient_name}"""


def generate_complaint(
    audit_result: Union[dict, Any],
    transcript: str = "",
    provider: Optional[LLMProvider] = None,
) -> str:
    """
    Generate a formal complaint for the flagged items of an audit.

    Args:
        audit_result: AuditResult or its dict form.
        transcript: Patient's transcribed voice input.
        provider: LLM provider to use. Auto-selects if None.

    Returns:
        str: Complaint text, or NO_COMPLAINT_MESSAGE when nothing is flagged.

    Raises:
        ValueError: If audit_result is missing.
    """
    if audit_result is None:
        raise ValueError("audit_result is required")

    audit = _as_dict(audit_result)
    flagged = get_flagged_items(audit)
    if not flagged:
        logger.info("No flagged items, no complaint needed")
        return NO_COMPLAINT_MESSAGE

    patient_name = _patient_name(audit)

    if provider is None:
        provider = get_drafting_provider()

    prompt = _build_complaint_prompt(audit, flagged, transcript)

    try:
        letter = _clean_complaint_response(provider.generate(prompt))
    except Exception as e:
        logger.error(f"LLM complaint generation failed: {e}")
        return _generate_fallback_complaint(audit, flagged, transcript)

    if not letter:
        logger.warning("Empty complaint from LLM, using fallback")
        return _generate_fallback_complaint(audit, flagged, transcript)

    if NO_COMPLAINT_MESSAGE in letter:
        return letter

    logger.info(f"Complaint generated for {len(flagged)} flagged item(s)")
    return _enforce_patient_name(letter, patient_name)
