"""Storage of uploaded profile photos on the local filesystem."""
import logging
import os
import random
import time

from fastapi import UploadFile

import config

logger = logging.getLogger(__name__)


def ensure_upload_dir() -> str:
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    return config.UPLOAD_DIR


def unique_filename(original_name: str) -> str:
    """Time + random suffix keeps concurrent uploads from colliding."""
    _, ext = os.path.splitext(original_name or "")
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext.lower()}"


async def save_photo(photo: UploadFile) -> str:
    """Writes the upload to UPLOAD_DIR and returns its public path."""
    filename = unique_filename(photo.filename)
    destination = os.path.join(ensure_upload_dir(), filename)
    content = await photo.read()
    with open(destination, "wb") as fh:
        fh.write(content)
    logger.info(f"Stored photo {photo.filename} as {filename} ({len(content)} bytes).")
    return f"{config.UPLOAD_URL_PREFIX}/{filename}"


def remove_photo(public_path: str) -> None:
    """Best-effort cleanup when registration fails after the file was written."""
    filename = os.path.basename(public_path)
    path = os.path.join(config.UPLOAD_DIR, filename)
    try:
        os.remove(path)
        logger.info(f"Removed orphaned photo {filename}.")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove orphaned photo {filename}: {e}")
