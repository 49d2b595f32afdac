"""
Export service for SnapInk application.

Writes the current image to disk. The format follows the file extension;
PNG, JPG and GIF are supported. JPEG has no alpha channel, so the image
is flattened to RGB before encoding.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from PIL import Image

from snapink.editor.session import ImagePayload
from snapink.errors import ExportError
from snapink.services.logging_service import get_logger

# File dialog filter name -> extensions, in the order they are offered
EXPORT_FORMATS: Dict[str, tuple] = {
    "PNG": ("png",),
    "JPG": ("jpg", "jpeg"),
    "GIF": ("gif",),
}

_PIL_FORMATS = {
    "png": "PNG",
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "gif": "GIF",
}

logger = get_logger(__name__)


def suggested_filename(now: Optional[datetime] = None) -> str:
    """Default name offered by the save dialog, without extension."""
    now = now or datetime.now()
    return f"snapshot_{now.strftime('%Y_%m_%d_%H_%M_%S')}"


def dialog_filter() -> str:
    """Qt file dialog filter string for the supported formats."""
    return ";;".join(
        f"{name} ({' '.join('*.' + ext for ext in extensions)})"
        for name, extensions in EXPORT_FORMATS.items()
    )


def save_image(payload: ImagePayload, path: Union[str, Path]) -> Path:
    """
    Encode the image according to the path's extension and write it.

    Args:
        payload: The pixels to write.
        path: Destination file.

    Returns:
        The path written.

    Raises:
        ExportError: If the extension is not supported or writing fails.
    """
    path = Path(path)
    extension = path.suffix.lower().lstrip(".")
    pil_format = _PIL_FORMATS.get(extension)
    if pil_format is None:
        raise ExportError(
            f"Unsupported image format {path.suffix!r}; use .png, .jpg or .gif"
        )

    image = Image.frombytes("RGBA", (payload.width, payload.height), payload.data)
    if pil_format == "JPEG":
        image = image.convert("RGB")

    try:
        image.save(path, pil_format)
    except (OSError, ValueError) as e:
        raise ExportError(f"Could not save image to {path}: {e}") from e

    logger.info(f"Image saved to: {path}")
    return path
