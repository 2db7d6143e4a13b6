"""
Segment schemas for the landing page.

Each section is a pydantic model of its content plus an optional `enabled`
flag that is accepted on input but left out of the generated JSON schema.
Unknown keys inside a section are ignored; unknown keys at segment level are
rejected, and every section of a segment is required.

Sections are grouped into four segments generated independently:

    identity          title, description, name, tagline + hero, problem_statement
    service_offering  services, process, pricing
    credibility       case_studies, expertise, about
    conversion        faq, cta, footer
"""

from typing import Dict, FrozenSet, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic.json_schema import SkipJsonSchema

from src.landing_page.types import SegmentType


class SectionContent(BaseModel):
    """Base for section payloads."""

    model_config = ConfigDict(extra="ignore")

    # Set by the editorial review only; cached payloads still carry it
    enabled: SkipJsonSchema[bool] = True


class SegmentPayload(BaseModel):
    """Base for segment payloads."""

    model_config = ConfigDict(extra="forbid")


# ===== identity =====

class HeroSection(SectionContent):
    headline: str = Field(description="Main headline, one short sentence")
    subheading: str = Field(description="Supporting line under the headline")
    cta_text: str = Field(description="Call to action button label")
    cta_link: str = "#contact"
    image_url: Optional[str] = None


class ProblemStatementSection(SectionContent):
    title: str = Field(description="Section heading")
    description: str = Field(description="The problem the audience faces")
    bullet_points: List[str] = Field(default_factory=list)


class IdentitySegment(SegmentPayload):
    title: str = Field(description="Page title")
    description: str = Field(description="Meta description of the page")
    name: str = Field(description="Person or business name")
    tagline: str = Field(description="Short tagline")
    hero: HeroSection
    problem_statement: ProblemStatementSection


# ===== service_offering =====

class ServiceItem(BaseModel):
    title: str
    description: str
    icon: Optional[str] = None
    details: Optional[str] = None


class ServicesSection(SectionContent):
    title: str = "Services"
    introduction: Optional[str] = None
    items: List[ServiceItem] = Field(min_length=1)


class ProcessStep(BaseModel):
    step: int
    title: str
    description: str


class ProcessSection(SectionContent):
    title: str = "How I Work"
    introduction: Optional[str] = None
    steps: List[ProcessStep] = Field(min_length=1)


class PricingTier(BaseModel):
    name: str
    price: Optional[str] = None
    description: str
    features: List[str] = Field(default_factory=list)
    is_featured: bool = False
    cta_text: str = "Contact Me"
    cta_link: str = "#contact"


class PricingSection(SectionContent):
    title: str = "Packages & Pricing"
    introduction: Optional[str] = None
    tiers: List[PricingTier] = Field(default_factory=list)


class ServiceOfferingSegment(SegmentPayload):
    services: ServicesSection
    process: ProcessSection
    pricing: PricingSection


# ===== credibility =====

class CaseStudy(BaseModel):
    title: str
    challenge: str
    approach: str
    results: str
    client: Optional[str] = None
    image_url: Optional[str] = None


class CaseStudiesSection(SectionContent):
    title: str = "Selected Projects"
    introduction: Optional[str] = None
    items: List[CaseStudy] = Field(default_factory=list)
    client_logos: List[str] = Field(default_factory=list)


class ExpertiseItem(BaseModel):
    title: str
    description: Optional[str] = None


class ExpertiseSection(SectionContent):
    title: str = "Expertise"
    introduction: Optional[str] = None
    items: List[ExpertiseItem] = Field(default_factory=list, description="3 to 5 areas")


class AboutSection(SectionContent):
    title: str = "About Me"
    content: str
    image_url: Optional[str] = None
    cta_text: Optional[str] = None
    cta_link: Optional[str] = None


class CredibilitySegment(SegmentPayload):
    case_studies: CaseStudiesSection
    expertise: ExpertiseSection
    about: AboutSection


# ===== conversion =====

class FaqItem(BaseModel):
    question: str
    answer: str


class FaqSection(SectionContent):
    title: str = "Frequently Asked Questions"
    introduction: Optional[str] = None
    items: List[FaqItem] = Field(default_factory=list, description="3 to 7 questions")


class CtaSection(SectionContent):
    title: str = "Ready to Get Started?"
    subtitle: Optional[str] = None
    button_text: str = "Contact Me"
    button_link: str = "#contact"


class SocialLink(BaseModel):
    platform: str
    url: str
    icon: Optional[str] = None


class ContactDetails(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    social: List[SocialLink] = Field(default_factory=list)


class FooterLink(BaseModel):
    text: str
    url: str


class FooterSection(SectionContent):
    contact_details: Optional[ContactDetails] = None
    copyright_text: Optional[str] = None
    links: List[FooterLink] = Field(default_factory=list)


class ConversionSegment(SegmentPayload):
    faq: FaqSection
    cta: CtaSection
    footer: FooterSection


# ===== Registry =====

SEGMENT_SCHEMAS: Dict[SegmentType, Type[SegmentPayload]] = {
    SegmentType.IDENTITY: IdentitySegment,
    SegmentType.SERVICE_OFFERING: ServiceOfferingSegment,
    SegmentType.CREDIBILITY: CredibilitySegment,
    SegmentType.CONVERSION: ConversionSegment,
}


def section_fields(schema: Type[BaseModel]) -> List[str]:
    """Names of the section fields of a segment schema, in declaration order."""
    names = []
    for name, field in schema.model_fields.items():
        annotation = field.annotation
        if isinstance(annotation, type) and issubclass(annotation, SectionContent):
            names.append(name)
    return names


def attribute_fields(schema: Type[BaseModel]) -> List[str]:
    """Names of the segment-level scalar fields of a segment schema."""
    sections = set(section_fields(schema))
    return [name for name in schema.model_fields if name not in sections]


SEGMENT_SECTIONS: Dict[SegmentType, Tuple[str, ...]] = {
    segment_type: tuple(section_fields(schema))
    for segment_type, schema in SEGMENT_SCHEMAS.items()
}

# Section name -> owning segment
SECTION_SEGMENTS: Dict[str, SegmentType] = {
    section_name: segment_type
    for segment_type, names in SEGMENT_SECTIONS.items()
    for section_name in names
}

CANONICAL_SECTION_ORDER: Tuple[str, ...] = (
    "hero",
    "problem_statement",
    "services",
    "process",
    "case_studies",
    "expertise",
    "about",
    "pricing",
    "faq",
    "cta",
    "footer",
)

REQUIRED_SECTIONS: FrozenSet[Tuple[SegmentType, str]] = frozenset({
    (SegmentType.IDENTITY, "hero"),
    (SegmentType.SERVICE_OFFERING, "services"),
})

# Display titles for sections whose content has no title of its own
DEFAULT_SECTION_TITLES: Dict[str, str] = {
    "hero": "Hero",
    "problem_statement": "The Problem",
    "footer": "Footer",
}


def section_title(section_name: str, content: Dict) -> str:
    """Display title for a section: its own title, else the hero headline, else a default."""
    title = content.get("title") or content.get("headline")
    if title:
        return str(title)
    return DEFAULT_SECTION_TITLES.get(section_name, section_name.replace("_", " ").title())
