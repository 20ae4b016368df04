"""
Bill extraction with a hosted vision model.

Sends a photographed or scanned bill (image or PDF) to the vision model
and returns the raw bill dictionary it produces. The result still has
to go through ml.audit.audit_engine.normalize_bill before auditing.
"""

import logging
import time
from typing import Optional

from ml.llm.llm_wrapper import ImagePart, LLMProvider, OpenAIProvider, parse_json_response

logger = logging.getLogger(__name__)

SUPPORTED_MIME_PREFIXES = ("image/",)
SUPPORTED_MIME_TYPES = ("application/pdf",)

EXTRACTION_PROMPT = """You are a medical bill analysis expert. Analyze the hospital bill image/PDF and extract structured data.

CRITICAL: Output ONLY valid JSON. No markdown, no explanations, no code blocks. Start directly with { and end with }.

STEP 1: Extract basic information:
- hospital_name: Name of the hospital/clinic (string, empty if not found)
- patient_name: Patient name if visible (string, empty if not found)
- bill_date: Date in YYYY-MM-DD format or original format from bill (string)
- city: City name if visible (string, empty if not found)

STEP 2: Extract all line items:
For each service/item on the bill, create an entry with:
- service: Exact service/item name from bill (string)
- quantity: Number of units (number, default 1 if not specified)
- price: Price per unit or total for that line (number, no currency symbols)
- flagged: true if medical equipment, monitors, oxygen or consumables are charged separately, or the same service appears twice, else false

STEP 3:
- total_amount: Sum of all line item prices (number)

OUTPUT FORMAT (JSON only, no markdown):
{
  "hospital_name": "",
  "patient_name": "",
  "bill_date": "",
  "city": "",
  "line_items": [
    {"service": "", "quantity": 1, "price": 0, "flagged": false}
  ],
  "total_amount": 0
}"""


class ExtractionError(Exception):
    """Raised when a bill could not be read by the vision model."""


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    if not mime_type:
        return False
    return mime_type.startswith(SUPPORTED_MIME_PREFIXES) or mime_type in SUPPORTED_MIME_TYPES


def extract_bill(
    file_bytes: bytes,
    mime_type: str,
    provider: Optional[LLMProvider] = None,
    filename: str = "bill",
) -> dict:
    """
    Extract structured bill data from an image or PDF.

    Args:
        file_bytes: Uploaded file contents.
        mime_type: MIME type of the upload (image/* or application/pdf).
        provider: Vision-capable provider. Defaults to OpenAIProvider.
        filename: Original file name, passed along for PDFs.

    Returns:
        dict: Raw bill as returned by the model.

    Raises:
        ExtractionError: If the file type is unsupported, the model call
            fails, or the response is not a JSON object.
    """
    if not file_bytes:
        raise ExtractionError("No file uploaded")
    if not is_supported_mime_type(mime_type):
        raise ExtractionError(f"Unsupported file type: {mime_type}")

    if provider is None:
        provider = OpenAIProvider()
    if not provider.is_available():
        raise ExtractionError("Vision model API key not configured")

    start_time = time.perf_counter()
    image = ImagePart(data=file_bytes, mime_type=mime_type, filename=filename)

    try:
        response = provider.generate(EXTRACTION_PROMPT, image=image)
    except RuntimeError as e:
        raise ExtractionError(f"Vision model call failed: {e}") from e

    try:
        raw_bill = parse_json_response(response)
    except ValueError as e:
        logger.error(f"Vision model returned unparseable output: {e}")
        raise ExtractionError("Failed to parse AI response as JSON") from e

    duration = time.perf_counter() - start_time
    logger.info(
        f"Extracted bill in {duration:.2f}s: "
        f"{len(raw_bill.get('line_items') or raw_bill.get('items') or [])} line items"
    )
    return raw_bill
