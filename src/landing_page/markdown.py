"""
Markdown rendering of assembled landing page sections.

Each renderer takes a section's content mapping and returns a markdown block
starting with a level-2 heading. Sections without a dedicated renderer fall
back to a generic key/value dump.
"""

from typing import Any, Callable, Dict, List, Mapping


def _heading(content: Mapping[str, Any], default: str) -> List[str]:
    lines = [f"## {content.get('title') or default}", ""]
    if content.get("introduction"):
        lines.extend([content["introduction"], ""])
    return lines


def _link(text: Any, url: Any) -> str:
    return f"[{text}]({url})" if url else str(text)


def _render_hero(content: Mapping[str, Any]) -> List[str]:
    lines = [f"## {content['headline']}", "", content["subheading"], ""]
    lines.append(_link(content["cta_text"], content.get("cta_link")))
    if content.get("image_url"):
        lines.extend(["", f"![hero]({content['image_url']})"])
    return lines


def _render_problem_statement(content: Mapping[str, Any]) -> List[str]:
    lines = [f"## {content['title']}", "", content["description"]]
    if content.get("bullet_points"):
        lines.append("")
        lines.extend(f"- {point}" for point in content["bullet_points"])
    return lines


def _render_services(content: Mapping[str, Any]) -> List[str]:
    lines = _heading(content, "Services")
    for item in content.get("items", []):
        lines.append(f"### {item['title']}")
        lines.append("")
        lines.append(item["description"])
        if item.get("details"):
            lines.extend(["", item["details"]])
        lines.append("")
    return lines


def _render_process(content: Mapping[str, Any]) -> List[str]:
    lines = _heading(content, "How I Work")
    for step in content.get("steps", []):
        lines.append(f"{step['step']}. **{step['title']}**: {step['description']}")
    return lines


def _render_case_studies(content: Mapping[str, Any]) -> List[str]:
    lines = _heading(content, "Selected Projects")
    for item in content.get("items", []):
        lines.append(f"### {item['title']}")
        lines.append("")
        if item.get("client"):
            lines.append(f"**Client:** {item['client']}")
        lines.append(f"**Challenge:** {item['challenge']}")
        lines.append(f"**Approach:** {item['approach']}")
        lines.append(f"**Results:** {item['results']}")
        lines.append("")
    if content.get("client_logos"):
        lines.append("Clients: " + ", ".join(content["client_logos"]))
    return lines


def _render_expertise(content: Mapping[str, Any]) -> List[str]:
    lines = _heading(content, "Expertise")
    for item in content.get("items", []):
        suffix = f": {item['description']}" if item.get("description") else ""
        lines.append(f"- **{item['title']}**{suffix}")
    return lines


def _render_about(content: Mapping[str, Any]) -> List[str]:
    lines = [f"## {content.get('title') or 'About Me'}", "", content["content"]]
    if content.get("cta_text") and content.get("cta_link"):
        lines.extend(["", _link(content["cta_text"], content["cta_link"])])
    return lines


def _render_pricing(content: Mapping[str, Any]) -> List[str]:
    lines = _heading(content, "Packages & Pricing")
    for tier in content.get("tiers", []):
        featured = " (featured)" if tier.get("is_featured") else ""
        price = f" - {tier['price']}" if tier.get("price") else ""
        lines.append(f"### {tier['name']}{price}{featured}")
        lines.append("")
        lines.append(tier["description"])
        lines.extend(f"- {feature}" for feature in tier.get("features", []))
        lines.extend(["", _link(tier.get("cta_text", "Contact Me"), tier.get("cta_link")), ""])
    return lines


def _render_faq(content: Mapping[str, Any]) -> List[str]:
    lines = _heading(content, "Frequently Asked Questions")
    for item in content.get("items", []):
        lines.extend([f"**{item['question']}**", "", item["answer"], ""])
    return lines


def _render_cta(content: Mapping[str, Any]) -> List[str]:
    lines = [f"## {content.get('title') or 'Ready to Get Started?'}", ""]
    if content.get("subtitle"):
        lines.extend([content["subtitle"], ""])
    lines.append(_link(content.get("button_text", "Contact Me"), content.get("button_link")))
    return lines


def _render_footer(content: Mapping[str, Any]) -> List[str]:
    lines = ["---", ""]
    contact = content.get("contact_details") or {}
    if contact.get("email"):
        lines.append(f"Email: {contact['email']}")
    if contact.get("phone"):
        lines.append(f"Phone: {contact['phone']}")
    for social in contact.get("social", []):
        lines.append(_link(social["platform"], social["url"]))
    links = content.get("links", [])
    if links:
        lines.append(" | ".join(_link(link["text"], link["url"]) for link in links))
    if content.get("copyright_text"):
        lines.append(content["copyright_text"])
    return lines


def _render_generic(content: Mapping[str, Any]) -> List[str]:
    lines = []
    for key, value in content.items():
        if key == "title":
            continue
        lines.append(f"**{key.replace('_', ' ').title()}:** {value}")
    return lines


SECTION_RENDERERS: Dict[str, Callable[[Mapping[str, Any]], List[str]]] = {
    "hero": _render_hero,
    "problem_statement": _render_problem_statement,
    "services": _render_services,
    "process": _render_process,
    "case_studies": _render_case_studies,
    "expertise": _render_expertise,
    "about": _render_about,
    "pricing": _render_pricing,
    "faq": _render_faq,
    "cta": _render_cta,
    "footer": _render_footer,
}


def render_section_markdown(section_name: str, content: Mapping[str, Any]) -> str:
    """Render one section's content as a markdown block."""
    renderer = SECTION_RENDERERS.get(section_name)
    if renderer is None:
        title = content.get("title") or section_name.replace("_", " ").title()
        lines = [f"## {title}", ""] + _render_generic(content)
    else:
        lines = renderer(content)
    return "\n".join(lines).rstrip()
