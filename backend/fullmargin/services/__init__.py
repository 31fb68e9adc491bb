"""
fullmargin.services

Package “services” : logique applicative (use-cases) indépendante des endpoints HTTP.

Rôle (fonctionnel) :
- Orchestration DB (sessions async) et règles métier réutilisables :
  - comptes / sessions,
  - communautés, adhésions, demandes d’accès, notifications,
  - cycle de vie des directs (programmation, démarrage, fin, expiration),
  - modération de la marketplace.

Principe :
- fullmargin.api = transport HTTP (routes, validation, dépendances)
- fullmargin.services = orchestration métier (réutilisable, testable)
- fullmargin.models / fullmargin.schemas = persistance et contrats
"""
