"""
Blob store for uploaded images.

Files go through Django's default storage under one directory per kind:

    post   -> posts/
    avatar -> avatars/
    cloth  -> cloths/

and are addressed by the relative URL /uploads/<dir>/<name>.
"""
import logging
import os
import time

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils.text import get_valid_filename

from .exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

KIND_DIRS = {
    'post': 'posts',
    'avatar': 'avatars',
    'cloth': 'cloths',
}


class StoredImage:
    def __init__(self, url: str, filename: str, size: int):
        self.url = url
        self.filename = filename
        self.size = size


def validate_image(upload) -> None:
    if upload is None:
        raise ValidationError('No file provided')

    allowed = settings.ALLOWED_IMAGE_TYPES
    if upload.content_type not in allowed:
        raise ValidationError(f"Invalid file type. Allowed types: {', '.join(allowed)}")

    max_size = settings.UPLOAD_MAX_FILE_SIZE
    if upload.size > max_size:
        raise ValidationError(f"File too large. Maximum size: {max_size / 1024 / 1024:g}MB")


def save_image(upload, kind: str = 'post') -> StoredImage:
    """
    Store an uploaded image and return where it lives.

    Unknown kinds fall back to posts/.
    """
    validate_image(upload)

    directory = KIND_DIRS.get(kind, KIND_DIRS['post'])
    name = get_valid_filename(os.path.basename(upload.name or 'image'))
    filename = f"{int(time.time() * 1000)}-{name}"

    stored_path = default_storage.save(f"{directory}/{filename}", upload)
    stored_name = os.path.basename(stored_path)
    logger.info("Stored %s image %s (%d bytes)", kind, stored_path, upload.size)

    return StoredImage(
        url=f"{settings.MEDIA_URL.rstrip('/')}/{directory}/{stored_name}",
        filename=stored_name,
        size=upload.size,
    )


def delete_image(filename: str) -> None:
    """Delete a stored image by bare file name, whichever kind it was saved as."""
    name = os.path.basename(filename or '')
    if name:
        for directory in KIND_DIRS.values():
            path = f"{directory}/{name}"
            if default_storage.exists(path):
                default_storage.delete(path)
                logger.info("Deleted image %s", path)
                return
    raise NotFoundError('File not found')


def public_url(url):
    """
    Absolute URL for a stored upload.

    Only paths containing /uploads/ are rewritten; external URLs and empty
    values are returned unchanged.
    """
    if not url:
        return url
    marker = settings.MEDIA_URL if settings.MEDIA_URL.startswith('/') else f"/{settings.MEDIA_URL}"
    index = url.find(marker)
    if index == -1:
        return url
    base = (settings.FILE_BASE_URL or '').rstrip('/')
    return f"{base}{url[index:]}"
