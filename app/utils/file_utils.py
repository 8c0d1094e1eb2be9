# backend/app/utils/file_utils.py

import logging
import os
import time

from fastapi import UploadFile
from supabase import Client

from app.core.config import settings
from app.core.errors import BadRequestError, PersistenceError


def check_welcome_image(filename: str, size: int) -> None:
    extension = os.path.splitext(filename)[1].lower()
    if extension not in settings.WELCOME_IMAGE_EXTENSIONS:
        raise BadRequestError("Please upload a JPG, PNG or WebP image.")
    if size > settings.WELCOME_IMAGE_MAX_BYTES:
        max_mb = settings.WELCOME_IMAGE_MAX_BYTES // (1024 * 1024)
        raise BadRequestError(f"Image must be under {max_mb} MB.")


def welcome_image_path(form_id: str, filename: str) -> str:
    return f"welcome/{form_id}/{int(time.time() * 1000)}-{os.path.basename(filename)}"


async def save_welcome_image(supabase: Client, file: UploadFile, form_id: str) -> str:
    """
    Upload a welcome-screen image for a form.

    Args:
        supabase (Client): Storage client.
        file (UploadFile): Image sent by the author.
        form_id (str): Form the image belongs to.

    Returns:
        str: Public URL of the stored image.
    """
    filename = file.filename or "image"
    content = await file.read()
    logging.info(f"Welcome image {filename} for form {form_id}: {len(content)} bytes")
    check_welcome_image(filename, len(content))

    file_path = welcome_image_path(form_id, filename)
    bucket = supabase.storage.from_(settings.UPLOAD_BUCKET)
    try:
        bucket.upload(file_path, content, {"content-type": file.content_type or "application/octet-stream",
                                           "upsert": "true"})
    except Exception as e:
        logging.error(f"Error uploading file {file_path}: {str(e)}")
        raise PersistenceError("Upload failed. Please try again.")

    public_url = bucket.get_public_url(file_path)
    logging.info(f"File uploaded successfully. Public URL: {public_url}")
    return public_url
