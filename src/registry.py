"""Study registry access.

Studies live in the warehouse ``study`` table. Only the columns that drive
access policy are mapped.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Optional

from sqlalchemy import Integer, String, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from config import get_logger
from entities import AccessPolicy
from errors import RegistryError

logger = get_logger(service="registry")

_TRUE_FLAG_VALUES = frozenset({"1", "y", "yes", "true"})


class Base(DeclarativeBase):
    pass


class Study(Base):
    __tablename__ = "study"

    id_study_tmp: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id_lims: Mapped[str] = mapped_column(String(10), default="SQSCP")
    id_study_lims: Mapped[str] = mapped_column(String(20), index=True)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    data_release_strategy: Mapped[Optional[str]] = mapped_column(String(255))
    data_access_group: Mapped[Optional[str]] = mapped_column(String(255))
    contaminated_human_dna: Mapped[Optional[str]] = mapped_column(String(255))
    contaminated_human_data_access_group: Mapped[Optional[str]] = mapped_column(String(255))


def parse_flag(value: object) -> bool:
    """Interpret a warehouse yes/no column; NULL and anything unrecognised is false."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_FLAG_VALUES


def to_access_policy(study: Study) -> AccessPolicy:
    return AccessPolicy(
        study_id=study.id_study_lims,
        data_access_group=study.data_access_group,
        contaminated_human_data_access_group=study.contaminated_human_data_access_group,
        data_release_strategy=study.data_release_strategy,
        contaminated_human_dna=parse_flag(study.contaminated_human_dna),
    )


class RegistryClient:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str) -> RegistryClient:
        try:
            engine = create_engine(url)
        except (SQLAlchemyError, ValueError) as e:
            raise RegistryError(f"Invalid registry database URL: {e}") from e
        return cls(engine)

    @property
    def url(self) -> str:
        return self._engine.url.render_as_string(hide_password=True)

    def check_connection(self) -> None:
        """Open and close one connection so an unreachable registry fails before any group is touched."""
        try:
            with self._engine.connect():
                pass
        except SQLAlchemyError as e:
            logger.error(f"Failed to connect to the registry at '{self.url}': {e}")
            raise RegistryError(f"Failed to connect to the registry at '{self.url}': {e}") from e
        logger.debug(f"Connected to the registry at '{self.url}'")

    def iter_access_policies(self, study_ids: Iterable[str] | None = None) -> Iterator[AccessPolicy]:
        """Stream study access policies ordered by study id.

        Args:
            study_ids: Optional allow-list of study ids; all studies when None.
        """
        query = select(Study).order_by(Study.id_study_lims)
        if study_ids is not None:
            query = query.where(Study.id_study_lims.in_([str(study_id) for study_id in study_ids]))

        try:
            with Session(self._engine) as session:
                for study in session.scalars(query):
                    yield to_access_policy(study)
        except SQLAlchemyError as e:
            logger.error(f"Registry query failed at '{self.url}': {e}")
            raise RegistryError(f"Registry query failed at '{self.url}': {e}") from e

    def dispose(self) -> None:
        self._engine.dispose()
