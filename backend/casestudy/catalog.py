from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class CaseStudyTemplate:
    id: str
    name: str
    description: str


TEMPLATES: tuple[CaseStudyTemplate, ...] = (
    CaseStudyTemplate(
        id="single_page_pdf",
        name="Single-Page PDF",
        description="A classic, professional layout perfect for printing or emailing.",
    ),
    CaseStudyTemplate(
        id="web_embed_card",
        name="Web Embed Card",
        description="A compact, modern card ideal for embedding on your website.",
    ),
    CaseStudyTemplate(
        id="presentation_slide",
        name="Presentation Slide",
        description="A clean, bold format designed for use in slide decks.",
    ),
)


def list_templates() -> list[dict[str, str]]:
    return [asdict(template) for template in TEMPLATES]


def is_known_template(template_id: str) -> bool:
    return any(template.id == template_id for template in TEMPLATES)
