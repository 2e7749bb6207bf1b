# app/utils/mongodb_utils.py
from datetime import datetime, date, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import HttpUrl

from app.utils.errors import NotFoundError


def to_object_id(value: Any, message: str = "Ressource non trouvée.") -> ObjectId:
    """
    Convertit un identifiant reçu dans l'URL en ObjectId.

    Un identifiant mal formé est traité comme une ressource inexistante (404).
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFoundError(message)


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or ObjectId.is_valid(str(value))


def convert_pydantic_for_mongodb(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convertit les types Pydantic pour qu'ils soient compatibles avec MongoDB

    Args:
        data: Dictionnaire contenant les données à convertir

    Returns:
        Dictionnaire avec les types convertis pour MongoDB
    """
    return {key: _convert_value(value) for key, value in data.items()}


def _convert_value(value: Any) -> Any:
    if isinstance(value, HttpUrl):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        # Stockage en UTC naïf, comme datetime.utcnow()
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, list):
        return [_convert_value(item) for item in value]
    if isinstance(value, dict):
        return convert_pydantic_for_mongodb(value)
    return value


def serialize_document(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Convertit un résultat MongoDB pour qu'il soit sérialisable en JSON :
    tous les ObjectId (y compris imbriqués) deviennent des chaînes.
    """
    if document is None:
        return None
    return {key: _serialize_value(value) for key, value in document.items()}


def serialize_documents(documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_document(doc) for doc in documents]


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return serialize_document(value)
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value
