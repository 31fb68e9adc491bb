from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fullmargin.core.settings import settings

"""
DB Session.

Rôle (fonctionnel) :
- Initialise l’engine SQLAlchemy en mode async (runtime FastAPI).
- Fournit la factory AsyncSessionLocal et la dépendance `get_db()`.

Notes :
- expire_on_commit=False : les objets restent lisibles après commit (sérialisation de la réponse).
- echo=False : pas de log SQL brut (on préfère les logs applicatifs en JSON).
- L’engine ne se connecte qu’au premier usage : les tests remplacent get_db sans jamais l’ouvrir.
"""

engine = create_async_engine(settings.DATABASE_URL, echo=False, pool_pre_ping=True)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db():
    """Dépendance FastAPI : yield une session DB et garantit sa fermeture."""
    async with AsyncSessionLocal() as session:
        yield session
