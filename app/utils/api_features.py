import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING

from app.utils.errors import BadRequestError
from app.utils.mongodb_utils import serialize_documents

logger = logging.getLogger(__name__)

EXCLUDED_FIELDS = {"page", "sort", "limit", "fields", "search"}
OPERATORS = {"gte", "gt", "lte", "lt", "ne", "in"}
DEFAULT_SEARCH_FIELDS = ("title", "description", "address.district", "type")
MAX_LIMIT = 100

_FIELD_RE = re.compile(r"^[A-Za-z_][\w.]*$")
_OPERATOR_RE = re.compile(r"^([A-Za-z_][\w.]*)\[(\w+)\]$")


def coerce_value(raw: str) -> Any:
    """Convertit une valeur de query string : booléen, entier, flottant, date ISO ou texte."""
    lowered = raw.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError:
        return raw
    # Les dates sont stockées en UTC naïf
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class APIFeatures:
    """
    Construit une requête MongoDB à partir des paramètres de l'URL :
    filtre (`price[gte]=1000`), recherche plein texte simple, tri,
    sélection de champs et pagination.

        features = (
            APIFeatures(collection, request.query_params, base_filter={"status_admin": "Validée"})
            .filter()
            .search()
            .sort()
            .limit_fields()
            .paginate()
        )
        items = await features.to_list()
        total = await features.count()
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        query_params: Mapping[str, str],
        base_filter: Optional[Dict[str, Any]] = None,
        allowed_filters: Optional[Iterable[str]] = None,
    ):
        self.collection = collection
        self.query_params = dict(query_params)
        self.base_filter = dict(base_filter or {})
        self.allowed_filters = set(allowed_filters) if allowed_filters is not None else None

        self.mongo_filter: Dict[str, Any] = dict(self.base_filter)
        self.sort_spec: List[Tuple[str, int]] = []
        self.projection: Optional[Dict[str, int]] = None
        self.page = 1
        self.limit = 10
        self.skip = 0

    # ─── 1. Filtre ───
    def filter(self) -> "APIFeatures":
        parsed: Dict[str, Any] = {}

        for key, raw in self.query_params.items():
            if key in EXCLUDED_FIELDS:
                continue

            match = _OPERATOR_RE.match(key)
            if match:
                field, operator = match.groups()
                if operator not in OPERATORS or not self._is_filterable(field):
                    continue
                if operator == "in":
                    value = [coerce_value(v) for v in raw.split(",") if v.strip()]
                else:
                    value = coerce_value(raw)
                condition = parsed.get(field)
                if not isinstance(condition, dict):
                    condition = {}
                condition[f"${operator}"] = value
                parsed[field] = condition
                continue

            if _FIELD_RE.match(key) and self._is_filterable(key):
                parsed[key] = coerce_value(raw)

        # Le filtre de base est prioritaire (ex: statut de modération imposé)
        parsed.update(self.base_filter)
        self.mongo_filter.update(parsed)
        return self

    def _is_filterable(self, field: str) -> bool:
        return self.allowed_filters is None or field in self.allowed_filters

    # ─── 2. Recherche ───
    def search(self, fields: Iterable[str] = DEFAULT_SEARCH_FIELDS) -> "APIFeatures":
        term = (self.query_params.get("search") or "").strip()
        if term:
            pattern = {"$regex": re.escape(term), "$options": "i"}
            self.mongo_filter["$or"] = [{field: pattern} for field in fields]
        return self

    # ─── 3. Tri ───
    def sort(self, default: str = "-created_at", allowed: Optional[Iterable[str]] = None) -> "APIFeatures":
        raw = self.query_params.get("sort") or default
        allowed_set = set(allowed) if allowed is not None else None
        spec: List[Tuple[str, int]] = []

        for part in raw.split(","):
            part = part.strip()
            if not part:
                continue
            direction = DESCENDING if part.startswith("-") else ASCENDING
            field = part.lstrip("-+")
            if not _FIELD_RE.match(field):
                raise BadRequestError(f"Champ de tri invalide : {field}")
            if allowed_set is not None and field not in allowed_set:
                raise BadRequestError(
                    f"Champ de tri non autorisé : {field}. Champs autorisés : {', '.join(sorted(allowed_set))}"
                )
            spec.append((field, direction))

        self.sort_spec = spec
        return self

    # ─── 4. Sélection des champs ───
    def limit_fields(self) -> "APIFeatures":
        raw = self.query_params.get("fields")
        if not raw:
            return self

        included = {}
        excluded = {}
        for part in raw.split(","):
            part = part.strip()
            field = part.lstrip("-")
            if not field or not _FIELD_RE.match(field):
                continue
            if part.startswith("-"):
                excluded[field] = 0
            else:
                included[field] = 1

        # MongoDB n'accepte pas le mélange inclusion / exclusion
        self.projection = included or excluded or None
        return self

    # ─── 5. Pagination ───
    def paginate(self, default_limit: int = 10) -> "APIFeatures":
        self.page = _parse_positive_int(self.query_params.get("page"), 1)
        self.limit = min(_parse_positive_int(self.query_params.get("limit"), default_limit), MAX_LIMIT)
        self.skip = (self.page - 1) * self.limit
        return self

    async def to_list(self) -> List[Dict[str, Any]]:
        cursor = self.collection.find(self.mongo_filter, self.projection)
        if self.sort_spec:
            cursor = cursor.sort(self.sort_spec)
        cursor = cursor.skip(self.skip).limit(self.limit)
        documents = await cursor.to_list(length=self.limit)
        logger.debug(f"🔎 APIFeatures {self.collection.name}: filtre={self.mongo_filter} -> {len(documents)} résultat(s)")
        return serialize_documents(documents)

    async def count(self) -> int:
        return await self.collection.count_documents(self.mongo_filter)

    def total_pages(self, total: int) -> int:
        return (total + self.limit - 1) // self.limit if self.limit else 0
