"""
QR Code Links

Jobs are shared as a QR code that deep-links to /job/{job_id}. The image
itself comes from an external QR service; we only build its URL.

    https://api.qrserver.com/v1/create-qr-code/?size=400x400&data=<link>&format=png
"""

import logging
import random
from typing import Optional, Tuple
from urllib.parse import quote

import httpx

from careermatch.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

JOB_ID_PREFIX = "JOB_"


def generate_job_id(rng: Optional[random.Random] = None) -> str:
    """Human-readable id, JOB_ plus a zero-padded 4-digit random number."""
    rng = rng or random.Random()
    return f"{JOB_ID_PREFIX}{rng.randint(0, 9999):04d}"


def is_job_token(value: str) -> bool:
    value = (value or "").strip().upper()
    return value.startswith(JOB_ID_PREFIX) and value[len(JOB_ID_PREFIX):].isdigit()


def job_link(job_id: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return f"{settings.app_base_url}/job/{job_id}"


def qr_code_url(job_id: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    size = f"{settings.qr_size}x{settings.qr_size}"
    data = quote(job_link(job_id, settings), safe="")
    return f"{settings.qr_service_url.rstrip('/')}/create-qr-code/?size={size}&data={data}&format=png"


def is_stale_qr_url(url: Optional[str]) -> bool:
    """QR codes generated during local development point at localhost."""
    if not url:
        return True
    return "localhost" in url or "127.0.0.1" in url


async def fetch_qr_image(url: str, timeout: float = 10.0) -> Tuple[bytes, str]:
    """
    Download the QR image. Raises httpx.HTTPError on any failure so the
    caller can fall back to redirecting to the raw URL.
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.content, response.headers.get("content-type", "image/png")
