from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ohplus.core.errors import InvalidInputError, NotConfiguredError
from ohplus.core.security import get_current_user
from ohplus.services import search

router = APIRouter(tags=["Search"])


class SearchRequest(BaseModel):
    query: str | None = None
    filters: str | None = None
    page: int | None = None
    hitsPerPage: int = search.DEFAULT_HITS_PER_PAGE


def _run(payload: SearchRequest, assignments: bool):
    query = payload.query or ""
    try:
        return search.search(
            payload.query,
            filters=payload.filters,
            page=payload.page,
            hits_per_page=payload.hitsPerPage,
            assignments=assignments,
        )
    except InvalidInputError as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content=search.empty_result("", str(exc))
        )
    except NotConfiguredError as exc:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=search.empty_result(query, str(exc)),
        )
    except search.SearchError as exc:
        content = search.empty_result(query, str(exc))
        content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)


@router.post("/search")
def search_products(payload: SearchRequest, current_user: dict = Depends(get_current_user)):
    return _run(payload, assignments=False)


@router.post("/search/service-assignments")
def search_assignments(payload: SearchRequest, current_user: dict = Depends(get_current_user)):
    return _run(payload, assignments=True)
