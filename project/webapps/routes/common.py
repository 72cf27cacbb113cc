# webapps/routes/common.py

import json
from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from webapps.core.exceptions import ValidationError
from webapps.services.catalog import typeset_dollars

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


def make_templates(app_name: str) -> Jinja2Templates:
    """Шаблоны приложения (shop / blog). Автоэкранирование HTML включено в Jinja2."""
    templates = Jinja2Templates(directory=str(TEMPLATES_DIR / app_name))
    templates.env.globals["typeset_dollars"] = typeset_dollars
    return templates


async def read_json(request: Request):
    """Тело JSON-запроса; пустое или битое тело -> ValidationError (400)."""
    raw = await request.body()
    if not raw:
        raise ValidationError(["Invalid JSON format or body is missing."])
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError(["Invalid JSON format or body is missing."])


def render_message(templates: Jinja2Templates, request: Request, template: str, status_code: int, message: str, **context):
    return templates.TemplateResponse(
        request, template, {"message": message, **context}, status_code=status_code
    )
