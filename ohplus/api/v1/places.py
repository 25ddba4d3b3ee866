from fastapi import APIRouter, Depends, Query

from ohplus.core.security import get_current_user
from ohplus.services import places

router = APIRouter(tags=["Places"])


@router.get("/places/search")
def search_places(
    query: str | None = None,
    region: str = Query("ph"),
    current_user: dict = Depends(get_current_user),
):
    return places.search_places(query, region)
