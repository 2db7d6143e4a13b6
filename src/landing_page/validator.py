"""
Schema validation for generated segments.

Turns a raw payload (parsed JSON from the text generation service) into a
Segment, or raises ValidationError naming every offending field. A payload is
accepted whole or not at all.
"""

from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.common.utils import utc_now_iso
from src.landing_page.errors import ValidationError
from src.landing_page.schemas import (
    SEGMENT_SCHEMAS,
    attribute_fields,
    section_fields,
    section_title,
)
from src.landing_page.types import Section, Segment, SegmentType


def _error_fields(error: PydanticValidationError) -> List[str]:
    return [".".join(str(part) for part in e["loc"]) or "<root>" for e in error.errors()]


class SchemaValidator:
    """
    Validates payloads against the per-segment pydantic schemas.

    Args:
        schemas: Segment type -> schema overrides (defaults to SEGMENT_SCHEMAS)
    """

    def __init__(self, schemas: Optional[Mapping[SegmentType, Type[BaseModel]]] = None):
        self._schemas: Dict[SegmentType, Type[BaseModel]] = dict(SEGMENT_SCHEMAS)
        if schemas:
            self._schemas.update({SegmentType.parse(k): v for k, v in schemas.items()})

    def schema_for(self, segment_type: SegmentType) -> Type[BaseModel]:
        return self._schemas[SegmentType.parse(segment_type)]

    def validate(
        self,
        segment_type: SegmentType,
        raw_payload: Any,
        version: int = 1,
        generated_at: Optional[str] = None,
        schema: Optional[Type[BaseModel]] = None,
    ) -> Segment:
        """
        Validate and normalize a payload into a Segment.

        Args:
            segment_type: Which segment the payload is for
            raw_payload: Parsed payload, a mapping of attributes and sections
            version: Version to stamp on the segment
            generated_at: Timestamp to stamp (defaults to now)
            schema: Schema override for this call

        Returns:
            Segment with every section of the schema present

        Raises:
            ValidationError: Payload is not a mapping, misses a section,
                carries unknown segment-level keys or has invalid content
        """
        segment_type = SegmentType.parse(segment_type)
        schema = schema or self.schema_for(segment_type)

        if not isinstance(raw_payload, Mapping):
            raise ValidationError(
                f"Payload must be an object, got {type(raw_payload).__name__}",
                segment_type=segment_type,
                fields=["<root>"],
            )

        try:
            model = schema.model_validate(dict(raw_payload))
        except PydanticValidationError as e:
            fields = _error_fields(e)
            raise ValidationError(
                f"Invalid {segment_type.value} payload: {', '.join(fields)}",
                segment_type=segment_type,
                fields=fields,
            ) from e

        sections: Dict[str, Section] = {}
        for name in section_fields(schema):
            section_model = getattr(model, name)
            content = section_model.model_dump(exclude={"enabled"})
            sections[name] = Section(
                title=section_title(name, content),
                content=content,
                enabled=section_model.enabled,
            )

        attributes = model.model_dump(include=set(attribute_fields(schema)))

        return Segment(
            segment_type=segment_type,
            version=version,
            generated_at=generated_at or utc_now_iso(),
            sections=sections,
            attributes=attributes,
        )
