import logging
import uuid
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
from fastapi import UploadFile

from app.config import settings
from app.utils.errors import AppError, BadRequestError

logger = logging.getLogger(__name__)

# Configuration
BASE_UPLOAD_DIR = Path(settings.UPLOAD_DIR)
PUBLIC_PREFIX = "/" + settings.UPLOAD_DIR.strip("/")

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
VIDEO_EXTENSIONS = {"mp4", "webm", "mov"}
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
MAX_VIDEO_SIZE = 50 * 1024 * 1024  # 50MB
MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10MB
MAX_ATTACHMENTS = 5


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def validate_image_file(file: UploadFile) -> None:
    """Valide le fichier image uploadé"""
    if not file.filename:
        raise BadRequestError("Nom de fichier manquant")

    if _extension(file.filename) not in IMAGE_EXTENSIONS:
        raise BadRequestError(
            f"Extension non autorisée. Extensions autorisées: {', '.join(sorted(IMAGE_EXTENSIONS))}"
        )

    if not file.content_type or not file.content_type.startswith("image/"):
        raise BadRequestError("Le fichier doit être une image")


def validate_video_file(file: UploadFile) -> None:
    if not file.filename:
        raise BadRequestError("Nom de fichier manquant")

    if _extension(file.filename) not in VIDEO_EXTENSIONS:
        raise BadRequestError(
            f"Extension non autorisée. Extensions autorisées: {', '.join(sorted(VIDEO_EXTENSIONS))}"
        )

    if not file.content_type or not file.content_type.startswith("video/"):
        raise BadRequestError("Le fichier doit être une vidéo")


def _create_safe_filename(prefix: str, extension: str) -> str:
    """Crée un nom de fichier sécurisé"""
    suffix = f".{extension}" if extension else ""
    return f"{prefix}_{uuid.uuid4().hex}{suffix}"


async def save_upload(file: UploadFile, area: str, prefix: str, kind: str = "image") -> Dict:
    """
    Valide puis enregistre un fichier sous `<UPLOAD_DIR>/<area>/`.

    :param kind: "image", "video" ou "attachment"
    :return: {"filename", "filepath" (URL publique), "mimetype", "size"}
    """
    if kind == "image":
        validate_image_file(file)
        max_size = MAX_IMAGE_SIZE
    elif kind == "video":
        validate_video_file(file)
        max_size = MAX_VIDEO_SIZE
    else:
        if not file.filename:
            raise BadRequestError("Nom de fichier manquant")
        max_size = MAX_ATTACHMENT_SIZE

    content = await file.read()
    if len(content) > max_size:
        raise AppError("Fichier trop volumineux", 413)

    target_dir = BASE_UPLOAD_DIR / area
    target_dir.mkdir(parents=True, exist_ok=True)

    filename = _create_safe_filename(prefix, _extension(file.filename))
    async with aiofiles.open(target_dir / filename, "wb") as f:
        await f.write(content)

    logger.info(f"📁 Fichier enregistré : {area}/{filename} ({len(content)} octets)")
    return {
        "filename": file.filename,
        "filepath": f"{PUBLIC_PREFIX}/{area}/{filename}",
        "mimetype": file.content_type or "application/octet-stream",
        "size": len(content),
    }


async def save_uploads(files: Optional[List[UploadFile]], area: str, prefix: str, kind: str = "image",
                       max_count: Optional[int] = None) -> List[Dict]:
    files = [f for f in (files or []) if f is not None and f.filename]
    if max_count is not None and len(files) > max_count:
        raise BadRequestError(f"Maximum {max_count} fichier(s) par envoi")
    saved: List[Dict] = []
    try:
        for f in files:
            saved.append(await save_upload(f, area, prefix, kind))
    except Exception:
        discard_uploads(saved)
        raise
    return saved


def discard_uploads(saved: Optional[List[Dict]]) -> None:
    """Supprime des fichiers déjà enregistrés quand la requête échoue ensuite."""
    for item in saved or []:
        delete_local_file(item.get("filepath"))


def delete_local_file(url: Optional[str]) -> None:
    """Supprime un fichier uploadé localement à partir de son URL publique"""
    if not url or not url.startswith(PUBLIC_PREFIX + "/"):
        return
    path = BASE_UPLOAD_DIR / url[len(PUBLIC_PREFIX) + 1:]
    if path.exists():
        path.unlink()
        logger.info(f"🗑️ Fichier supprimé: {path}")
