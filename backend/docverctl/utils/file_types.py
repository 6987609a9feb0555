"""
File type helpers
"""
import re
from docverctl.core.config import settings

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_editable_text(path: str) -> bool:
    return extension(path) in settings.editable_extensions


def is_pdf(path: str) -> bool:
    return extension(path) == "pdf"


def infer_content_type(path: str) -> str:
    if is_pdf(path):
        return "application/pdf"
    if extension(path) == "docx":
        return DOCX_CONTENT_TYPE
    if is_editable_text(path):
        return "text/plain; charset=utf-8"
    return "application/octet-stream"


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
