"""
fullmargin

Package racine du backend FullMargin (communautés de traders, directs, marketplace).

Rôle (fonctionnel) :
- Contient tout le code applicatif (API, logique métier, accès DB, schémas).
- Sert de point d’ancrage pour les imports : `from fullmargin...`

Organisation (haute-level) :
- fullmargin.api      : routes FastAPI (contrats HTTP, dépendances, sérialisation)
- fullmargin.core     : briques transverses (settings, errors, logs, sécurité, realtime, rate-limit…)
- fullmargin.db       : base SQLAlchemy + session async
- fullmargin.models   : modèles ORM (tables Postgres)
- fullmargin.schemas  : schémas Pydantic (entrées/sorties API)
- fullmargin.services : logique métier / use-cases (directs, adhésions, modération…)
"""
