"""Client matching strategies."""

import logging
import re
from typing import Optional, Protocol

from ..extraction.models import ExtractedAppointmentInfo
from ..store.models import Client
from ..store.protocol import AppointmentStore

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def client_key(name: str) -> str:
    """Case-insensitive key identifying a client by name."""
    return " ".join(name.split()).lower()


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Digits of a phone number, without a leading North-American country code."""
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits or None


class ClientMatcher(Protocol):
    """Strategy deciding which stored client an occurrence belongs to."""

    async def find(
        self, store: AppointmentStore, info: ExtractedAppointmentInfo
    ) -> Optional[Client]: ...


class NameMatcher:
    """Match on case-insensitive name equality."""

    async def find(
        self, store: AppointmentStore, info: ExtractedAppointmentInfo
    ) -> Optional[Client]:
        return await store.find_client_by_name(info.client_name)


class NamePhoneMatcher:
    """Match on name, rejecting the match when both sides carry different phones."""

    async def find(
        self, store: AppointmentStore, info: ExtractedAppointmentInfo
    ) -> Optional[Client]:
        client = await store.find_client_by_name(info.client_name)
        if client is None:
            return None

        wanted = normalize_phone(info.phone)
        stored = normalize_phone(client.phone)
        if wanted and stored and wanted != stored:
            logger.debug(
                f"Client {client.id} ({client.name}) matched by name but phone differs"
            )
            return None
        return client


MATCHERS = {
    "name": NameMatcher,
    "name_phone": NamePhoneMatcher,
}


def matcher_for(strategy: str) -> ClientMatcher:
    """Build the matcher for a ``match_strategy`` setting value."""
    try:
        return MATCHERS[strategy]()
    except KeyError:
        raise ValueError(f"Unknown client match strategy: {strategy}") from None
