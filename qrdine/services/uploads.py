import logging
import os
import time

from fastapi import UploadFile

from qrdine.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXT = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


async def upload_image(file: UploadFile, path_prefix: str = "menu-items") -> str | None:
    """Store an image under MEDIA_ROOT/<prefix>/ and return its public URL."""
    if not file or not file.filename:
        return None

    base = os.path.basename(file.filename).replace(" ", "_")
    ext = os.path.splitext(base)[1].lower()
    if ext not in ALLOWED_EXT:
        logger.info("rejected upload %s: unsupported extension", file.filename)
        return None

    name = f"{int(time.time() * 1000)}_{base}"
    folder = os.path.join(settings.MEDIA_ROOT, path_prefix)
    try:
        os.makedirs(folder, exist_ok=True)
        content = await file.read()
        with open(os.path.join(folder, name), "wb") as f:
            f.write(content)
    except OSError:
        logger.exception("image upload to %s failed", folder)
        return None

    return f"{settings.MEDIA_URL.rstrip('/')}/{path_prefix}/{name}"
