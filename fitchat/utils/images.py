"""
IMAGE UTILITY
=============

Meal photos travel as data: URIs (data:image/png;base64,...), the same shape a
browser canvas produces. Helpers here:

  open_photo_source(path)  - context manager; opens a photo file, yields a
                             PhotoSource whose capture() returns a PNG data URI,
                             and always releases the file handle on exit.
  normalize_data_uri(uri)  - decode a client-supplied data URI, check it is a
                             real image with Pillow, re-encode it as PNG.
"""

import base64
import binascii
import io
import re
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from PIL import Image, UnidentifiedImageError

from fitchat.errors import MediaAccessError, ValidationError


DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.-]+)*;base64,(?P<data>.*)$", re.DOTALL)

# Unreadable data, truncated files and images over Pillow's pixel limit.
IMAGE_ERRORS = (UnidentifiedImageError, OSError, Image.DecompressionBombError)


def to_png_data_uri(image: Image.Image) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def _load_image(raw: bytes) -> Image.Image:
    """Open raw bytes as an image, fully decoded. Raises the errors in IMAGE_ERRORS."""
    with Image.open(io.BytesIO(raw)) as probe:
        probe.verify()
    # verify() leaves the image unusable; open again to decode pixels.
    image = Image.open(io.BytesIO(raw))
    image.load()
    if image.mode not in ("RGB", "RGBA", "L", "LA"):
        image = image.convert("RGB")
    return image


def normalize_data_uri(data_uri: str) -> str:
    """Return data_uri re-encoded as a PNG data URI; ValidationError if it isn't an image."""
    match = DATA_URI_PATTERN.match((data_uri or "").strip())
    if not match:
        raise ValidationError("Meal photo must be a base64 data: URI")
    try:
        raw = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Meal photo is not valid base64", {"reason": str(e)}) from e
    try:
        image = _load_image(raw)
    except IMAGE_ERRORS as e:
        raise ValidationError("Meal photo is not a readable image", {"reason": str(e)}) from e
    return to_png_data_uri(image)


class PhotoSource:
    """An open photo file. Only valid inside open_photo_source()."""

    def __init__(self, path: Path, handle: BinaryIO):
        self.path = path
        self._handle: Optional[BinaryIO] = handle

    @property
    def closed(self) -> bool:
        return self._handle is None

    def capture(self) -> str:
        """Read the photo and return it as a PNG data URI."""
        if self._handle is None:
            raise MediaAccessError(f"Photo source {self.path} is already closed")
        try:
            self._handle.seek(0)
            image = _load_image(self._handle.read())
        except IMAGE_ERRORS as e:
            raise MediaAccessError(f"Could not read photo {self.path}", {"reason": str(e)}) from e
        return to_png_data_uri(image)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


@contextmanager
def open_photo_source(path) -> Iterator[PhotoSource]:
    """Open a photo for capture; MediaAccessError if it can't be opened."""
    path = Path(path).expanduser()
    try:
        handle = open(path, "rb")
    except OSError as e:
        raise MediaAccessError(f"Could not access photo {path}", {"reason": str(e)}) from e
    source = PhotoSource(path, handle)
    try:
        yield source
    finally:
        source.close()
