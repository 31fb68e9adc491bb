"""
fullmargin.core

Briques transverses (cross-cutting concerns) partagées par tous les domaines
(communautés, directs, marketplace, notifications) :

- settings   : configuration centralisée (variables d’environnement, .env).
- errors     : format d’erreur API uniforme + AppHTTPException et erreurs métier récurrentes.
- logging    : logs JSON enrichis du request_id et des extras métier.
- request_id : identifiant de corrélation par requête (ContextVar).
- clock      : “maintenant” en UTC et normalisation des dates relues en base.
- security   : mots de passe, sessions JWT, token d’accès aux salles de direct.
- rate_limit : limitation de débit (anti brute-force sur /auth).
- realtime   : manager WebSocket par topic (events de directs par communauté).
"""
