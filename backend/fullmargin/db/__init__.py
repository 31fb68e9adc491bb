"""
fullmargin.db

Connexion et sessions SQLAlchemy (async) pour FastAPI (Depends(get_db)).
Les migrations Alembic utilisent DATABASE_URL_SYNC.
"""
