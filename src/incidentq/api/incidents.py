from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request

from ..config import Settings
from ..deps import get_settings, get_storage
from ..query import Page, paginate, parse_filters
from ..storage import Storage

router = APIRouter(prefix="/incidents", tags=["incidents"])


def _first(request: Request, name: str) -> Optional[str]:
    values = request.query_params.getlist(name)
    return values[0] if values else None


def page_window(request: Request, settings: Settings = Depends(get_settings)) -> Page:
    return paginate(_first(request, "page"), _first(request, "limit"), settings.max_page_size)


@router.get("")
def list_incidents(
    request: Request,
    page: Page = Depends(page_window),
    storage: Storage = Depends(get_storage),
) -> List[Dict[str, Any]]:
    """Return one page of incidents, filtered by any whitelisted field.

    Accepted filters: incident_state, opened_by, category, urgency,
    assignment_group. Other query parameters are ignored.
    """
    filters = parse_filters(request.query_params.multi_items())
    return storage.list_incidents(filters, page)


@router.get("/{number}")
def get_incident(
    number: str,
    page: Page = Depends(page_window),
    storage: Storage = Depends(get_storage),
) -> List[Dict[str, Any]]:
    """Return every incident with this number; an empty list when none match."""
    return storage.find_by_number(number, page)
