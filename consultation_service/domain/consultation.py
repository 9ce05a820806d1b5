"""Consultation Data Transfer Object.

This module defines the record exchanged across the API boundary for the
Consultation entity. Only the identifier is interpreted by the service; every
other field is carried through unchanged between the client, the relational
store and the search index.

Architecture:
    - Pure domain model with zero infrastructure dependencies
    - Identity is owned by the persistence adapter, never by the client
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# Entity name used in alert headers and error payloads
ENTITY_NAME = "consultationConsultation"


class ConsultationDTO(BaseModel):
    """Data transfer object for a Consultation.

    The model accepts arbitrary extra JSON fields and round-trips them, so
    the REST layer stays agnostic of the consultation's domain attributes.

    Parameters:
        id: Identifier assigned by the persistence layer (None for new records)

    Example:
        ```python
        dto = ConsultationDTO.model_validate({"name": "x"})
        assert dto.id is None
        assert dto.payload() == {"name": "x"}
        ```
    """

    id: Optional[int] = Field(None, description="Identifier assigned by the persistence layer")

    model_config = ConfigDict(extra="allow")

    def payload(self) -> dict[str, Any]:
        """Return the opaque domain fields (everything except the identifier)."""
        return dict(self.model_extra or {})

    def with_id(self, consultation_id: int) -> "ConsultationDTO":
        """Return a copy of this record carrying the given identifier."""
        return ConsultationDTO.from_storage(consultation_id, self.payload())

    @classmethod
    def from_storage(cls, consultation_id: int, payload: dict[str, Any]) -> "ConsultationDTO":
        """Rebuild a record from its stored identifier and payload.

        A stray ``id`` key inside the payload never overrides the stored identifier.
        """
        data = {k: v for k, v in payload.items() if k != "id"}
        data["id"] = consultation_id
        return cls.model_validate(data)
