# Query gateway: the data-access surface used by the web layer.
# Each operation builds SQL text plus an ordered parameter list, performs exactly one round trip
# through the injected pool, and shapes the returned rows into pydantic records.
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from . import schemas
from .errors import DataAccessError, InvalidParameter, translate
from .sql import Query, SelectBuilder, statement

# Namespaced logger for query diagnostics
logger = logging.getLogger("lightbnb.gateway")

DEFAULT_LIMIT = 10

# Insert column order for properties; values are bound in exactly this order
PROPERTY_COLUMNS = (
    "owner_id",
    "title",
    "description",
    "thumbnail_photo_url",
    "cover_photo_url",
    "cost_per_night",
    "street",
    "city",
    "province",
    "post_code",
    "country",
    "parking_spaces",
    "number_of_bathrooms",
    "number_of_bedrooms",
)

USER_COLUMNS = ("name", "email", "password")


class ConnectionPool(Protocol):
    """Anything that can run one parameterized statement and hand back its rows."""

    async def execute(self, sql: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
        ...


def _insert(table: str, columns: Sequence[str], values: Mapping[str, Any]) -> Query:
    placeholders = ", ".join(f":p{i}" for i in range(1, len(columns) + 1))
    return statement(
        f"INSERT INTO {table} ({', '.join(columns)})\nVALUES ({placeholders})\nRETURNING *",
        *(values.get(column) for column in columns),
    )


def _as_mapping(obj: Union[Mapping[str, Any], Any]) -> Mapping[str, Any]:
    # Accept pydantic models as well as plain dicts
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return obj


def search_options(
    options: Union[schemas.PropertySearchOptions, Mapping[str, Any], None],
) -> schemas.PropertySearchOptions:
    """Coerce caller-supplied search options; values that cannot be bound raise InvalidParameter."""
    if isinstance(options, schemas.PropertySearchOptions):
        return options
    try:
        return schemas.PropertySearchOptions.model_validate(options or {})
    except ValidationError as exc:
        err = InvalidParameter(
            "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
        )
        logger.warning("properties.search rejected: %s", err.message)
        raise err from exc


def build_property_search(
    options: Union[schemas.PropertySearchOptions, Mapping[str, Any], None],
    limit: int = DEFAULT_LIMIT,
) -> Query:
    """
    Assemble the property search statement.

    Clause order, and therefore parameter order:
    city, minimum price, maximum price, owner_id (WHERE), minimum rating (HAVING), limit.
    Absent filters contribute neither text nor a parameter. Prices arrive in major
    units and are bound in cents.
    """
    options = search_options(options)

    q = SelectBuilder(
        """
        SELECT properties.*, AVG(property_reviews.rating) AS average_rating
        FROM properties
        JOIN property_reviews ON property_reviews.property_id = properties.id
        """
    )
    if options.city:
        q.where("properties.city LIKE {}", f"%{options.city}%")
    if options.minimum_price_per_night:
        q.where("properties.cost_per_night > {}", schemas.to_minor_units(options.minimum_price_per_night))
    if options.maximum_price_per_night:
        q.where("properties.cost_per_night < {}", schemas.to_minor_units(options.maximum_price_per_night))
    if options.owner_id:
        q.where("properties.owner_id = {}", options.owner_id)

    q.group_by("properties.id")

    # Filters on the aggregate, so it cannot be a WHERE predicate
    if options.minimum_rating:
        q.having("AVG(property_reviews.rating) >= {}", options.minimum_rating)

    return q.order_by("properties.cost_per_night ASC").limit(limit).build()


def build_guest_reservations(guest_id: Any, limit: int = DEFAULT_LIMIT) -> Query:
    return statement(
        """
        SELECT properties.*,
               reservations.id AS reservation_id,
               reservations.guest_id,
               reservations.start_date,
               reservations.end_date,
               AVG(property_reviews.rating) AS average_rating
        FROM reservations
        JOIN properties ON reservations.property_id = properties.id
        JOIN property_reviews ON properties.id = property_reviews.property_id
        WHERE reservations.guest_id = :p1
        GROUP BY properties.id, reservations.id
        ORDER BY reservations.start_date ASC
        LIMIT :p2
        """.strip(),
        guest_id,
        limit,
    )


class QueryGateway:
    """
    Stateless facade over a shared connection pool.

    Contract:
    - Point lookups return a record, or None when no row matches.
    - Inserts return the row as persisted (including the generated id).
    - Listings return a (possibly empty) list of records.
    - Store failures are raised as DataAccessError subclasses
      (ConstraintViolation / ConnectivityFailure); search options that cannot be
      coerced raise InvalidParameter. Nothing is swallowed.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self.pool = pool

    async def _run(self, operation: str, query: Query) -> List[Dict[str, Any]]:
        logger.debug("%s: %s (%d params)", operation, query.sql, len(query.params))
        try:
            return await self.pool.execute(query.sql, query.params)
        except (DataAccessError, SQLAlchemyError, OSError) as exc:
            err = translate(exc)
            logger.warning("%s failed: %s", operation, err.message)
            if err is exc:
                raise
            raise err from exc

    # ----------------
    # Users
    # ----------------
    async def get_user_with_email(self, email: str) -> Optional[schemas.UserRecord]:
        rows = await self._run("users.by_email", statement("SELECT * FROM users WHERE email = :p1", email))
        return schemas.UserRecord.model_validate(rows[0]) if rows else None

    async def get_user_with_id(self, user_id: Any) -> Optional[schemas.UserRecord]:
        rows = await self._run("users.by_id", statement("SELECT * FROM users WHERE id = :p1", user_id))
        return schemas.UserRecord.model_validate(rows[0]) if rows else None

    async def add_user(self, user: Union[Mapping[str, Any], Any]) -> schemas.UserRecord:
        """Insert a user (name, email, password stored verbatim) and return the persisted row."""
        rows = await self._run("users.insert", _insert("users", USER_COLUMNS, _as_mapping(user)))
        return schemas.UserRecord.model_validate(rows[0])

    # ----------------
    # Reservations
    # ----------------
    async def get_all_reservations(self, guest_id: Any, limit: int = DEFAULT_LIMIT) -> List[schemas.ReservationRecord]:
        rows = await self._run("reservations.by_guest", build_guest_reservations(guest_id, limit))
        return [schemas.ReservationRecord.model_validate(row) for row in rows]

    # ----------------
    # Properties
    # ----------------
    async def get_all_properties(
        self,
        options: Union[schemas.PropertySearchOptions, Mapping[str, Any], None] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[schemas.PropertyListing]:
        options = search_options(options)
        query = build_property_search(options, limit)
        rows = await self._run("properties.search", query)
        logger.info(
            "properties.search",
            extra={
                "filters": sorted(name for name, value in options.model_dump().items() if value),
                "params": len(query.params),
                "limit": limit,
                "count": len(rows),
            },
        )
        return [schemas.PropertyListing.model_validate(row) for row in rows]

    async def add_property(self, prop: Union[Mapping[str, Any], Any]) -> schemas.PropertyRecord:
        """
        Insert a property across its fourteen descriptive columns and return the persisted row.

        Missing fields are bound as NULL so the store's NOT NULL constraints reject them.
        cost_per_night is stored as given (cents).
        """
        rows = await self._run("properties.insert", _insert("properties", PROPERTY_COLUMNS, _as_mapping(prop)))
        return schemas.PropertyRecord.model_validate(rows[0])
