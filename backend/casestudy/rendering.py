from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from casestudy.schema import CaseStudyDraft

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
CASE_STUDY_TEMPLATE = "case_study.html"


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_case_study_html(draft: CaseStudyDraft) -> str:
    """Render ``draft`` into the fixed single-page layout handed to the PDF renderer."""

    template = _environment().get_template(CASE_STUDY_TEMPLATE)
    return template.render(draft=draft)
