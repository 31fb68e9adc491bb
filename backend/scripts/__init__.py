"""
scripts

Package utilitaire pour les scripts de maintenance / données.

Rôle (fonctionnel) :
- Contient des scripts exécutables (CLI) liés au projet, par exemple :
  - génération de données de démo (seed_demo)
  - tâches ponctuelles de debug / inspection

Note :
- Les scripts ne doivent pas contenir de logique métier “centrale” :
  ils orchestrent et appellent les modules de `fullmargin/` (models, services, db…).
"""
