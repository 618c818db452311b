# tempchat/api/giphy.py

from fastapi import APIRouter, Depends, Query

from tempchat.api.deps import get_giphy
from tempchat.core.security import current_session
from tempchat.core.types import SessionData
from tempchat.services.giphy import GiphyClient

router = APIRouter(prefix="/api/giphy")


@router.get("/search")
def search_gifs(
    q: str = "",
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    session: SessionData = Depends(current_session),
    giphy: GiphyClient = Depends(get_giphy),
):
    return giphy.search(q, limit, offset)


@router.get("/trending")
def trending_gifs(
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    session: SessionData = Depends(current_session),
    giphy: GiphyClient = Depends(get_giphy),
):
    return giphy.trending(limit, offset)
