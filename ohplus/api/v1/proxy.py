from fastapi import APIRouter, Query
from fastapi.responses import Response

from ohplus.services import proxy

router = APIRouter(tags=["Proxy"])


@router.get("/proxy-image")
def proxy_image(url: str | None = Query(None)):
    proxied = proxy.fetch_image(url)
    return Response(
        content=proxied.content,
        media_type=proxied.content_type,
        headers={
            "Cache-Control": "public, max-age=31536000, immutable",
            "Access-Control-Allow-Origin": "*",
        },
    )


@router.get("/proxy-pdf")
def proxy_pdf(url: str | None = Query(None)):
    proxied = proxy.fetch_pdf(url)
    return Response(
        content=proxied.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{proxied.filename}"',
            "Cross-Origin-Resource-Policy": "cross-origin",
            "Access-Control-Allow-Origin": "*",
            "Cache-Control": "public, max-age=300, must-revalidate",
        },
    )
