"""Single-page web UI for the fridge and pantry tracker."""

from __future__ import annotations

import json

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from dispensa.models.product import CATEGORIES, STORAGE_LABELS, UNITS
from dispensa.server.templates import load as load_template

UI_OPTIONS = {
    "categories": list(CATEGORIES),
    "units": list(UNITS),
    "storage": STORAGE_LABELS,
}

WEB_APP_PAGE = load_template("index.html").replace("__UI_OPTIONS__", json.dumps(UI_OPTIONS))

router = APIRouter(include_in_schema=False)


@router.get("/", response_class=HTMLResponse)
def ui_home() -> str:
    """Serve the Frigorifero & Dispensa SPA."""

    return WEB_APP_PAGE
