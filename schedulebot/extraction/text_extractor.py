"""Heuristic extraction of client, pet, price and contact data from event text."""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .models import ExtractedAppointmentInfo

logger = logging.getLogger(__name__)

# Price formats, tried in order: "$45", "45$", "($45)"
PRICE_PATTERNS = [
    re.compile(r"\$(\d+(?:\.\d{2})?)"),
    re.compile(r"(\d+(?:\.\d{2})?)\$"),
    re.compile(r"\(\$(\d+(?:\.\d{2})?)\)"),
]
QUANTITY_PRICE_PATTERN = re.compile(r"(\d+)\s*[xX]\s*(\d+(?:\.\d{2})?)")

# Client name formats, tried in order
NAME_PATTERNS = [
    re.compile(r"^([^\W\d_]+(?:\s+[^\W\d_]+)*)"),  # leading run of words
    re.compile(r"^([^(]+?)(?:\s*\(|$)"),  # text before a parenthesis
    re.compile(r"^(.+?)(?:\s+\*|\s+\d+)"),  # text before "*" or digits
]

PET_KEYWORDS = [
    "esnauser",
    "schnauzer",
    "bichon",
    "yorki",
    "yorkshire",
    "cocker",
    "gran danés",
    "great dane",
    "chizu",
    "chihuahua",
    "perrit",
    "dog",
    "cat",
    "golden",
    "labrador",
    "poodle",
    "maltese",
]
# Stems matched as word prefixes ("perrito", "yorkie")
PET_STEMS = frozenset({"yorki", "perrit"})
PET_PATTERNS = [
    (
        keyword,
        re.compile(
            rf"\b{re.escape(keyword)}" + ("" if keyword in PET_STEMS else r"\b"), re.IGNORECASE
        ),
    )
    for keyword in PET_KEYWORDS
]

# Service keywords mapped to service names
SERVICE_KEYWORDS = {
    "groom": "Full Grooming",
    "bath": "Bath Only",
    "nail": "Nail Trim",
}

PHONE_PATTERN = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
PARENTHESIZED = re.compile(r"\(([^)]+)\)")
EMPTY_PARENS = re.compile(r"\(\s*\)")
ARTIFACTS = re.compile(r"[*•]+")
WHITESPACE = re.compile(r"\s+")
LOCATION_BREAKS = re.compile(r"\\n|\r?\n")


class TextExtractor:
    """Turns an event summary (plus description and location) into booking details.

    Extraction is deterministic and never raises on odd input: every field
    falls back to a default.
    """

    def __init__(self, settings: Any) -> None:
        """Initialize the extractor.

        Args:
            settings: Application settings (uses ``organization_prefixes``,
                ``default_service`` and ``unknown_client_name``)
        """
        self.default_service = settings.default_service
        self.unknown_client_name = settings.unknown_client_name
        self.prefix_pattern = self._build_prefix_pattern(settings.organization_prefixes)

    @staticmethod
    def _build_prefix_pattern(prefixes: list[str]) -> Optional[re.Pattern[str]]:
        alternatives = [
            r"\s*".join(re.escape(word) for word in prefix.split())
            for prefix in prefixes
            if prefix.strip()
        ]
        if not alternatives:
            return None
        return re.compile(rf"^\s*(?:{'|'.join(alternatives)})\b\s*", re.IGNORECASE)

    def extract(
        self,
        summary: str,
        description: Optional[str] = None,
        location: Optional[str] = None,
    ) -> ExtractedAppointmentInfo:
        """Extract appointment details from event text.

        Args:
            summary: Event summary, e.g. "Cely Pets Carla $50"
            description: Event description (searched first for a phone number)
            location: Event location, normalized into an address

        Returns:
            Extracted appointment info
        """
        working = summary.strip()
        if self.prefix_pattern is not None:
            working = self.prefix_pattern.sub("", working, count=1)

        amount, working = self._extract_amount(working)
        client_name, working = self._extract_client_name(working)
        pet_info = self._extract_pet_info(working)

        if client_name is None:
            client_name = self._fallback_name(summary)

        return ExtractedAppointmentInfo(
            client_name=client_name,
            pet_info=pet_info,
            amount=amount,
            services=self._extract_services(summary),
            phone=self.extract_phone(description, summary),
            address=self.normalize_address(location),
            original_summary=summary,
        )

    def _extract_amount(self, text: str) -> tuple[Optional[Decimal], str]:
        for pattern in PRICE_PATTERNS:
            match = pattern.search(text)
            if match:
                text = pattern.sub("", text, count=1)
                text = EMPTY_PARENS.sub("", text).strip()
                return Decimal(match.group(1)), text

        match = QUANTITY_PRICE_PATTERN.search(text)
        if match:
            try:
                amount = Decimal(match.group(1)) * Decimal(match.group(2))
            except InvalidOperation:
                return None, text
            return amount, QUANTITY_PRICE_PATTERN.sub("", text, count=1).strip()

        return None, text

    def _extract_client_name(self, text: str) -> tuple[Optional[str], str]:
        for pattern in NAME_PATTERNS:
            match = pattern.search(text)
            if match and match.group(1).strip():
                name = WHITESPACE.sub(" ", match.group(1).strip())
                return name, text.replace(match.group(1), "", 1).strip()
        return None, text

    def _extract_pet_info(self, text: str) -> str:
        candidates = [keyword for keyword, pattern in PET_PATTERNS if pattern.search(text)]

        paren = PARENTHESIZED.search(text)
        if paren:
            candidates.append(paren.group(1).strip())
            text = PARENTHESIZED.sub("", text, count=1)

        leftover = WHITESPACE.sub(" ", ARTIFACTS.sub("", text, count=1)).strip()
        if len(leftover) > 1:
            candidates.append(leftover)

        unique: list[str] = []
        for candidate in candidates:
            if candidate and candidate.lower() not in (seen.lower() for seen in unique):
                unique.append(candidate)
        return " ".join(unique).strip()

    def _fallback_name(self, summary: str) -> str:
        for token in summary.split():
            if "$" in token or not any(char.isalpha() for char in token):
                continue
            return token
        return self.unknown_client_name

    def _extract_services(self, summary: str) -> list[str]:
        lowered = summary.lower()
        services = [name for keyword, name in SERVICE_KEYWORDS.items() if keyword in lowered]
        return services or [self.default_service]

    @staticmethod
    def extract_phone(*texts: Optional[str]) -> Optional[str]:
        """Return the first phone number found, searching texts in order."""
        for text in texts:
            if not text:
                continue
            match = PHONE_PATTERN.search(text)
            if match:
                return match.group(0).strip()
        return None

    @staticmethod
    def normalize_address(location: Optional[str]) -> Optional[str]:
        """Join location lines with commas and shorten the country name."""
        if not location:
            return None
        address = LOCATION_BREAKS.sub(", ", location)
        address = address.replace("Estados Unidos", "USA")
        address = WHITESPACE.sub(" ", address).strip(" ,")
        return address or None

    def looks_like_appointment(self, summary: str) -> bool:
        """Heuristic check that an event is a grooming booking.

        True for summaries carrying the business prefix, a price, quantity
        pricing, or pet vocabulary.
        """
        if not summary:
            return False

        has_price = bool(re.search(r"\$\d+|\d+\$", summary))

        if self.prefix_pattern is not None and self.prefix_pattern.search(summary):
            return True
        if has_price or QUANTITY_PRICE_PATTERN.search(summary):
            return True
        return any(pattern.search(summary) for _, pattern in PET_PATTERNS)
