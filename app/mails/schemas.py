from enum import Enum
from typing import Optional

from app.utils.errors import BadRequestError

DEFAULT_SUBJECT = "Sans objet"
MAX_SUBJECT_LENGTH = 200
MAX_CONTENT_LENGTH = 10000
DEFAULT_PAGE_SIZE = 20


class MailPriority(str, Enum):
    LOW = "Basse"
    NORMAL = "Normale"
    HIGH = "Haute"
    URGENT = "Urgente"


class MailBox(str, Enum):
    RECEIVED = "received"
    SENT = "sent"
    UNREAD = "unread"
    STARRED = "starred"
    DRAFTS = "drafts"
    TRASH = "trash"


def parse_priority(value: Optional[str]) -> Optional[MailPriority]:
    if value is None or value == "":
        return None
    try:
        return MailPriority(value)
    except ValueError:
        raise BadRequestError(f"Priorité invalide. Valeurs possibles : {', '.join(p.value for p in MailPriority)}")


def clean_subject(value: Optional[str]) -> str:
    subject = (value or "").strip() or DEFAULT_SUBJECT
    if len(subject) > MAX_SUBJECT_LENGTH:
        raise BadRequestError(f"L'objet ne peut pas dépasser {MAX_SUBJECT_LENGTH} caractères")
    return subject


def check_content(value: str) -> str:
    if len(value) > MAX_CONTENT_LENGTH:
        raise BadRequestError(f"Le contenu ne peut pas dépasser {MAX_CONTENT_LENGTH} caractères")
    return value
