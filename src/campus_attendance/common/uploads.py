from __future__ import annotations

import secrets
from pathlib import Path

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..core.constants import ALLOWED_IMAGE_MIMETYPES
from ..core.exceptions import ValidationError


def save_image(file: FileStorage | None, *, upload_root: str | Path, field: str) -> str:
    """Store an uploaded image under <upload_root>/<field>/ and return its public path.

    Only image mimetypes are accepted; the size cap is enforced by Flask's
    MAX_CONTENT_LENGTH before the request reaches us.
    """

    if file is None or not file.filename:
        raise ValidationError(f"{field} file is required")
    if (file.mimetype or "").lower() not in ALLOWED_IMAGE_MIMETYPES:
        raise ValidationError("Only image files are allowed")

    original = secure_filename(file.filename) or "upload"
    suffix = Path(original).suffix.lower()
    name = f"{field}-{secrets.token_hex(8)}{suffix}"

    target_dir = Path(upload_root) / field
    target_dir.mkdir(parents=True, exist_ok=True)
    file.save(target_dir / name)
    return f"/uploads/{field}/{name}"
