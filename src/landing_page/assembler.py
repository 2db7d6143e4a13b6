"""
Document Assembler.

Deterministically combines segments into a Document: walks the canonical
section order and includes a section iff it is enabled. The same segments
always produce an equal Document.
"""

import copy
from typing import Dict, FrozenSet, Iterable, Mapping, Sequence, Tuple

from src.common.logger import get_logger
from src.landing_page.errors import AssemblyPreconditionError
from src.landing_page.schemas import CANONICAL_SECTION_ORDER, REQUIRED_SECTIONS, SECTION_SEGMENTS
from src.landing_page.types import Document, Segment, SegmentType


class DocumentAssembler:
    """
    Builds Documents from assessed segments.

    Args:
        required_sections: (segment_type, section_name) pairs that must be
            present and enabled
        section_segments: Section name -> owning segment type
    """

    def __init__(
        self,
        required_sections: Iterable[Tuple[SegmentType, str]] = REQUIRED_SECTIONS,
        section_segments: Mapping[str, SegmentType] = SECTION_SEGMENTS,
    ):
        self._logger = get_logger(__name__, stage="assemble")
        self.required_sections: FrozenSet[Tuple[SegmentType, str]] = frozenset(required_sections)
        self.section_segments = dict(section_segments)

    def check_preconditions(
        self,
        segments: Mapping[SegmentType, Segment],
        section_order: Sequence[str],
    ) -> None:
        """
        Raise AssemblyPreconditionError unless every required section is
        present, enabled and placed in the order.
        """
        # Sorted so the reported violation does not depend on set ordering
        for segment_type, section_name in sorted(self.required_sections, key=lambda k: (k[0].value, k[1])):
            segment = segments.get(segment_type)
            if segment is None:
                raise AssemblyPreconditionError(
                    f"Required segment {segment_type.value} is missing",
                    segment_type=segment_type,
                    section_name=section_name,
                )
            section = segment.section(section_name)
            if section is None:
                raise AssemblyPreconditionError(
                    f"Required section {section_name} is missing",
                    segment_type=segment_type,
                    section_name=section_name,
                )
            if not section.enabled:
                raise AssemblyPreconditionError(
                    f"Required section {section_name} is disabled",
                    segment_type=segment_type,
                    section_name=section_name,
                )
            if section_name not in section_order:
                raise AssemblyPreconditionError(
                    f"Required section {section_name} is not in the section order",
                    segment_type=segment_type,
                    section_name=section_name,
                )

    def assemble(
        self,
        segments: Mapping[SegmentType, Segment],
        section_order: Sequence[str] = CANONICAL_SECTION_ORDER,
    ) -> Document:
        """
        Assemble a Document.

        Args:
            segments: Segment type -> segment; segments may be missing unless
                they hold a required section
            section_order: Section names in display order

        Returns:
            Document holding only enabled sections, in section_order

        Raises:
            AssemblyPreconditionError: A required section is missing or disabled
        """
        self.check_preconditions(segments, section_order)

        included = []
        sections: Dict[str, Dict] = {}
        for section_name in section_order:
            segment_type = self.section_segments.get(section_name)
            segment = segments.get(segment_type) if segment_type is not None else None
            if segment is None:
                continue
            section = segment.section(section_name)
            if section is None or not section.enabled or section_name in sections:
                continue
            included.append(section_name)
            sections[section_name] = copy.deepcopy(section.content)

        identity = segments.get(SegmentType.IDENTITY)
        attributes = identity.attributes if identity is not None else {}

        document = Document(
            title=attributes.get("title", ""),
            description=attributes.get("description", ""),
            section_order=tuple(included),
            sections=sections,
            name=attributes.get("name", ""),
            tagline=attributes.get("tagline", ""),
        )
        self._logger.info(f"Assembled document with {len(included)} sections: {', '.join(included)}")
        return document


def assemble_document(
    segments: Mapping[SegmentType, Segment],
    section_order: Sequence[str] = CANONICAL_SECTION_ORDER,
) -> Document:
    """Convenience function to assemble with the default required sections."""
    return DocumentAssembler().assemble(segments, section_order)
