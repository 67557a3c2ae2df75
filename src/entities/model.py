"""Catalog entity model shared by every processor and analyzer."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
import hashlib
import json
from pathlib import Path
from typing import Any, Mapping


class EntityKind(str, Enum):
    MOVIE = "movie"
    TV = "tv"
    PERSON = "person"
    COMPANY = "company"
    COLLECTION = "collection"
    GENRE = "genre"
    KEYWORD = "keyword"


GENRE_NAMES: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}

COUNTRY_NAMES: dict[str, str] = {
    "US": "United States",
    "GB": "United Kingdom",
    "FR": "France",
    "DE": "Germany",
    "JP": "Japan",
    "KR": "South Korea",
    "CN": "China",
    "IN": "India",
    "CA": "Canada",
    "AU": "Australia",
}

MAJOR_STUDIOS = (
    "walt disney",
    "warner bros",
    "universal",
    "paramount",
    "sony pictures",
    "20th century",
    "columbia",
    "metro-goldwyn-mayer",
    "lionsgate",
    "marvel studios",
    "pixar",
    "dreamworks",
)

PRESTIGE_STUDIOS = (
    "a24",
    "focus features",
    "searchlight",
    "neon",
    "blumhouse",
    "legendary",
    "annapurna",
    "miramax",
)

MAJOR_FRANCHISES = (
    "star wars",
    "marvel",
    "harry potter",
    "lord of the rings",
    "fast & furious",
    "james bond",
    "jurassic",
    "mission: impossible",
    "transformers",
    "pirates of the caribbean",
    "toy story",
    "batman",
    "spider-man",
    "x-men",
)


def _parse_year(value: str | None) -> int:
    if not value or not isinstance(value, str):
        return 0
    try:
        return date.fromisoformat(value[:10]).year
    except ValueError:
        head = value[:4]
        return int(head) if head.isdigit() else 0


def _names(items: Any) -> tuple[str, ...]:
    """Normalize a list of strings or {name: ...} records into names."""
    if not items:
        return ()
    names = []
    for item in items:
        if isinstance(item, str):
            name = item
        elif isinstance(item, Mapping):
            name = item.get("name") or ""
        else:
            continue
        name = name.strip()
        if name and name not in names:
            names.append(name)
    return tuple(names)


def _records(items: Any, keys: tuple[str, ...]) -> tuple[dict[str, Any], ...]:
    if not items:
        return ()
    out = []
    for item in items:
        if isinstance(item, Mapping):
            out.append({k: item[k] for k in keys if k in item})
    return tuple(out)


@dataclass(frozen=True)
class Entity:
    """A catalog item of one kind.

    Shared attributes live on the dataclass; anything that only one kind
    carries (studio analysis, career span, franchise type) goes in
    ``payload``.
    """

    id: str
    kind: EntityKind
    name: str
    source_id: int | str | None = None
    description: str = ""
    popularity: float = 0.0
    rating: float = 0.0
    vote_count: int = 0
    release_date: str | None = None
    genres: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    collection_id: int | str | None = None
    collection_name: str | None = None
    companies: tuple[dict[str, Any], ...] = ()
    cast: tuple[dict[str, Any], ...] = ()
    crew: tuple[dict[str, Any], ...] = ()
    language: str | None = None
    countries: tuple[str, ...] = ()
    adult: bool = False
    tagline: str = ""
    aliases: tuple[str, ...] = ()
    payload: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def year(self) -> int:
        """Release year, or 0 when no date resolves."""
        return _parse_year(self.release_date)

    @property
    def decade(self) -> int:
        year = self.year
        return (year // 10) * 10 if year else 0

    def text_blob(self) -> str:
        """Lowercased searchable text: name, description, tagline, genres."""
        parts = [self.name, self.description, self.tagline, " ".join(self.genres)]
        return " ".join(p for p in parts if p).lower()

    @classmethod
    def from_record(cls, record: Mapping[str, Any], kind: EntityKind | str | None = None) -> "Entity":
        """Build an entity from a catalog record or a raw provider record."""
        raw_kind = kind or record.get("kind") or record.get("media_type") or "movie"
        entity_kind = EntityKind(raw_kind)

        raw_id = record.get("id")
        source_id = record.get("source_id", raw_id)
        if isinstance(raw_id, str) and raw_id.startswith(f"{entity_kind.value}_"):
            entity_id = raw_id
        else:
            entity_id = f"{entity_kind.value}_{raw_id}"

        genres = _names(record.get("genres"))
        if not genres and record.get("genre_ids"):
            genres = tuple(
                GENRE_NAMES[g] for g in record["genre_ids"] if g in GENRE_NAMES
            )

        keywords = record.get("keywords") or ()
        if isinstance(keywords, Mapping):
            keywords = keywords.get("keywords") or keywords.get("results") or ()

        collection = record.get("collection") or record.get("belongs_to_collection")
        collection_id = record.get("collection_id")
        collection_name = record.get("collection_name")
        if isinstance(collection, Mapping):
            collection_id = collection.get("id", collection_id)
            collection_name = collection.get("name", collection_name)

        countries = record.get("countries") or record.get("origin_country") or ()
        if isinstance(countries, str):
            countries = (countries,)

        date_value = (
            record.get("release_date")
            or record.get("first_air_date")
            or record.get("air_date")
        )

        return cls(
            id=entity_id,
            kind=entity_kind,
            name=(record.get("name") or record.get("title") or "").strip(),
            source_id=source_id,
            description=record.get("description") or record.get("overview") or "",
            popularity=float(record.get("popularity") or 0.0),
            rating=float(record.get("rating") or record.get("vote_average") or 0.0),
            vote_count=int(record.get("vote_count") or 0),
            release_date=date_value or None,
            genres=genres,
            keywords=_names(keywords),
            collection_id=collection_id,
            collection_name=collection_name,
            companies=_records(
                record.get("companies") or record.get("production_companies"),
                ("id", "name", "origin_country"),
            ),
            cast=_records(
                record.get("cast"), ("id", "name", "order", "popularity", "character")
            ),
            crew=_records(record.get("crew"), ("id", "name", "job", "department")),
            language=record.get("language") or record.get("original_language"),
            countries=tuple(countries),
            adult=bool(record.get("adult", False)),
            tagline=record.get("tagline") or "",
            aliases=_names(
                record.get("aliases")
                or record.get("also_known_as")
                or [
                    v
                    for v in (record.get("original_title"), record.get("original_name"))
                    if v and v != (record.get("name") or record.get("title"))
                ]
            ),
            payload=dict(record.get("payload") or {}),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "source_id": self.source_id,
            "description": self.description,
            "popularity": self.popularity,
            "rating": self.rating,
            "vote_count": self.vote_count,
            "release_date": self.release_date,
            "genres": list(self.genres),
            "keywords": list(self.keywords),
            "collection_id": self.collection_id,
            "collection_name": self.collection_name,
            "companies": [dict(c) for c in self.companies],
            "cast": [dict(c) for c in self.cast],
            "crew": [dict(c) for c in self.crew],
            "language": self.language,
            "countries": list(self.countries),
            "adult": self.adult,
            "tagline": self.tagline,
            "aliases": list(self.aliases),
            "payload": self.payload,
        }


Catalog = dict[str, Entity]


def catalog_from_records(records: list[Mapping[str, Any]] | Mapping[str, Any]) -> Catalog:
    """Build a catalog from a list of records or an id -> record mapping."""
    items = records.values() if isinstance(records, Mapping) else records
    catalog: Catalog = {}
    for record in items:
        entity = Entity.from_record(record)
        catalog[entity.id] = entity
    return catalog


def load_catalog(path: str | Path) -> Catalog:
    """Load a JSON catalog file (list, mapping, or {"entities": ...})."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, Mapping) and "entities" in data:
        data = data["entities"]
    return catalog_from_records(data)


def catalog_fingerprint(catalog: Mapping[str, Entity]) -> str:
    """Stable hash of catalog contents, independent of insertion order."""
    payload = [catalog[key].to_record() for key in sorted(catalog)]
    encoded = json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
    ).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()
