# listing_engine/db.py
"""Database engine, session utilities and the `ListingStore` collaborator.

`ListingStore` is the only place SQL is executed. It speaks SQLAlchemy text
statements with numbered named binds (`:p1`, `:p2`, ...) and Core
statements, and turns every driver failure into a generic `StorageError`.
"""
import math
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from . import config
from .errors import StorageError
from .utils import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0088


def haversine_km(lat1, lng1, lat2, lng2):
    """Great-circle distance in kilometres, ``None`` if any input is missing."""
    if lat1 is None or lng1 is None or lat2 is None or lng2 is None:
        return None
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def register_sqlite_functions(engine):
    """Expose `haversine_km` to SQL on every new SQLite connection."""
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):
        dbapi_conn.create_function("haversine_km", 4, haversine_km, deterministic=True)
    return engine


def make_engine(url: str, **kwargs):
    # Normalize SQLAlchemy URL scheme (SQLAlchemy 2.x doesn't accept 'postgres://')
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)
    if url.startswith("sqlite"):
        return register_sqlite_functions(create_engine(url, **kwargs))
    # tuned pool settings for cloud DB
    kwargs.setdefault("pool_size", config.DB_POOL_SIZE)
    kwargs.setdefault("max_overflow", config.DB_MAX_OVERFLOW)
    kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


engine = make_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class ExecResult(NamedTuple):
    rowcount: int
    primary_key: Optional[Any]


def bind_params(params: Sequence[Any]) -> Dict[str, Any]:
    """Map a positional params list onto the `:p1`, `:p2`, ... names."""
    return {f"p{i}": value for i, value in enumerate(params, start=1)}


class ListingStore:
    """Relational store over one SQLAlchemy session.

    The store keeps no state besides the session; the session's own
    transaction is committed after each successful write.
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    def dialect(self) -> str:
        return self.session.get_bind().dialect.name

    def _run(self, statement, params=None):
        if isinstance(statement, str):
            statement = text(statement)
        try:
            return self.session.execute(statement, params or {})
        except (SQLAlchemyError, OverflowError) as err:
            # drivers raise OverflowError for integers they cannot bind
            self.session.rollback()
            logger.exception("Listing store statement failed")
            raise StorageError("Database query failed") from err

    def count(self, where_sql: str, params: Sequence[Any]) -> int:
        sql = f"SELECT COUNT(*) AS total FROM {config.LISTING_TABLE}"
        if where_sql:
            sql += f" WHERE {where_sql}"
        value = self._run(sql, bind_params(params)).scalar()
        return int(value or 0)

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        result = self._run(sql, bind_params(params))
        return [dict(row) for row in result.mappings().all()]

    def execute(self, statement, params: Optional[Sequence[Any]] = None) -> ExecResult:
        """Run a write and commit it.

        ``statement`` is either SQL text using numbered binds or a Core
        statement that carries its own values (``params`` is then ignored).
        """
        bound = bind_params(params) if isinstance(statement, str) and params else None
        result = self._run(statement, bound)
        pk = None
        if getattr(result, "is_insert", False) and result.inserted_primary_key:
            pk = result.inserted_primary_key[0]
        try:
            self.session.commit()
        except SQLAlchemyError as err:
            self.session.rollback()
            logger.exception("Listing store commit failed")
            raise StorageError("Database query failed") from err
        return ExecResult(rowcount=result.rowcount, primary_key=pk)

    # geospatial capability, addressed through bound placeholders

    def distance_km_sql(self, lat_ph: str, lng_ph: str) -> str:
        if self.dialect == "postgresql":
            # ST_MakePoint expects (lng, lat)
            return (
                "(ST_Distance("
                "ST_SetSRID(ST_MakePoint(pickup_lng, pickup_lat), 4326)::geography, "
                f"ST_SetSRID(ST_MakePoint({lng_ph}, {lat_ph}), 4326)::geography"
                ") / 1000.0)"
            )
        return f"haversine_km(pickup_lat, pickup_lng, {lat_ph}, {lng_ph})"

    def within_radius_sql(self, lat_ph: str, lng_ph: str, radius_ph: str) -> str:
        if self.dialect == "postgresql":
            return (
                "ST_DWithin("
                "ST_SetSRID(ST_MakePoint(pickup_lng, pickup_lat), 4326)::geography, "
                f"ST_SetSRID(ST_MakePoint({lng_ph}, {lat_ph}), 4326)::geography, "
                f"({radius_ph} * 1000.0))"
            )
        return f"{self.distance_km_sql(lat_ph, lng_ph)} <= {radius_ph}"
