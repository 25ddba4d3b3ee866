import importlib.util
import logging
import os

from fastapi import APIRouter

from ohplus.core import config

router = APIRouter(tags=["Doctor"])
logger = logging.getLogger("ohplus.doctor")


def _flag(ok: bool) -> str:
    return "OK" if ok else "ERROR"


@router.get("/doctor")
def doctor():
    settings = config.settings
    checks = {
        "auth": bool(os.getenv("FIREBASE_CREDENTIALS_JSON") or os.getenv("FIREBASE_CREDENTIALS_PATH")),
        "storage": bool(os.getenv("GCS_BUCKET")) or os.getenv("LOCAL_STORAGE", "0") == "1",
        "email": bool(os.getenv("RESEND_API_KEY")),
        "search": bool(os.getenv("ALGOLIA_APP_ID") and os.getenv("ALGOLIA_API_KEY")),
        "maps": bool(os.getenv("GOOGLE_MAPS_API_KEY")),
        "weather": bool(os.getenv("ACCUWEATHER_API_KEY")),
        "pdf": importlib.util.find_spec("weasyprint") is not None,
        "cors": bool(settings.BACKEND_CORS_ORIGINS),
    }
    missing = [name for name, ok in checks.items() if not ok]
    if missing:
        logger.warning("doctor missing=%s", ",".join(missing))
    return {
        "status": "OK" if not missing else "WARN",
        **{name: _flag(ok) for name, ok in checks.items()},
    }
