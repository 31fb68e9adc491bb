from sqlalchemy import JSON, MetaData
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

"""
DB Base.

Rôle (fonctionnel) :
- Classe Base SQLAlchemy commune à tous les modèles ORM (enregistrement dans la metadata).
- Convention de nommage des contraintes : noms stables pour Alembic (autogenerate / drop).
- JSONType : JSONB sur PostgreSQL, JSON générique ailleurs (tests SQLite).
"""

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Classe racine ORM (SQLAlchemy Declarative)."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
