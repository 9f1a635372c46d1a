"""Appointment details extraction from calendar event text."""

from .models import ExtractedAppointmentInfo
from .text_extractor import TextExtractor

__all__ = ["ExtractedAppointmentInfo", "TextExtractor"]
