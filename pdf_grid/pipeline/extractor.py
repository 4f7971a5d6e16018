"""
One extraction call: send a sub-document to Claude, get back a batch-local
PageDataMap.

Pages are keyed "1", "2", "3"... relative to the sub-document; remapping to
document page numbers is the orchestrator's job.
"""

import base64
import logging

import anthropic

from pdf_grid.config import DEFAULT_MAX_TOKENS, DEFAULT_MODEL, Settings
from pdf_grid.errors import ExtractionServiceError
from pdf_grid.pipeline.parser import parse_response
from pdf_grid.state import PageDataMap

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a structure-recovery engine for accounting and financial reports.
Your task: convert the PDF you are given into structured JSON.

Core principle: ONE VISUAL CELL = ONE STRING.
Treat every table in the PDF as a fixed grid. Each element of a JSON row
array must correspond to exactly one visual cell of that table row.

Rules:
1. Structure: return a JSON object. Keys are page numbers relative to the
   PDF you received ("1", "2", ...). Values are 2D arrays of strings.

2. Diagonal / split cells:
   - If one cell is divided by a diagonal line with text on both sides
     (e.g. "Item" bottom-left, "Month" top-right), merge it into a SINGLE
     string separated by " / ", e.g. "Item / Month".
   - NEVER split such a cell into two array elements (["Item", "Month"]);
     that shifts every following cell of the row to the right. It occupies
     exactly one position.
   - If the cell only holds a diagonal line and no text, output "".

3. Strict alignment:
   - First count the header columns (e.g. 11).
   - Every row below MUST have exactly that many elements.
   - Blank cells (empty, or only a diagonal line) MUST be output as "".
     Never skip them and never shift later values left to save space.
   - Example: if column 3 is blank, output ["A", "B", "", "D"],
     not ["A", "B", "D"].

4. Visual fidelity:
   - Include page headers, footers and notes.
   - Text stacked over several lines inside one cell is merged into one
     string (e.g. "ID\\nnumber" -> "ID number").

5. Escaping: every double quote inside a value must be escaped as \\".

Example:
{
  "1": [
    ["Report title"],
    ["Item / Month", "Jan", "Feb"],
    ["Revenue", "100", ""]
  ]
}

Return ONLY the JSON object. No prose, no markdown fences, no comments."""

EXTRACT_PROMPT = """\
Analyse this PDF fragment and return JSON.
This fragment is part of a larger document. Return the data of every page
in this fragment, keyed 1, 2, 3... by page position within the fragment.
Pay particular attention to the alignment of blank cells; never put a value
in the wrong column."""


class BatchExtractionClient:
    """Wraps a single Messages API call per sub-document."""

    def __init__(
        self,
        client: anthropic.Anthropic,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_credential(cls, api_key: str, settings: Settings | None = None) -> "BatchExtractionClient":
        settings = settings or Settings()
        return cls(
            anthropic.Anthropic(api_key=api_key),
            model=settings.model,
            max_tokens=settings.max_tokens,
        )

    def _request(self, pdf_bytes: bytes):
        encoded = base64.standard_b64encode(pdf_bytes).decode("ascii")
        return self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{
                "role": "user",
                "content": [
                    {
                        "type": "document",
                        "source": {
                            "type": "base64",
                            "media_type": "application/pdf",
                            "data": encoded,
                        },
                    },
                    {"type": "text", "text": EXTRACT_PROMPT},
                ],
            }],
        )

    def extract(self, pdf_bytes: bytes) -> PageDataMap:
        """Extract grids from a sub-document, keyed by batch-local page number.

        Raises ExtractionServiceError when the call fails or returns no text,
        ParseError when the text cannot be decoded even after repair.
        """
        try:
            response = self._request(pdf_bytes)
        except anthropic.APIError as exc:
            raise ExtractionServiceError(f"Extraction request failed: {exc}") from exc

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise ExtractionServiceError("Extraction service returned no data")

        if getattr(response, "stop_reason", None) == "max_tokens":
            logger.warning("Response hit max_tokens=%d, output is likely truncated", self.max_tokens)

        return parse_response(text)
