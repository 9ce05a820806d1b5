"""Domain layer for the Consultation service.

This module contains the consultation model, pagination primitives, ports and
the service coordinating the store and the search index.
"""

from .consultation import ENTITY_NAME, ConsultationDTO
from .pagination import Page, Pageable, SortOrder

__all__ = [
    "ENTITY_NAME",
    "ConsultationDTO",
    "Page",
    "Pageable",
    "SortOrder",
]
