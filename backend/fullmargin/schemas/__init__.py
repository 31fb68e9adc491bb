"""
fullmargin.schemas

Schémas API (Pydantic) : contrats d’entrée/sortie, distincts des modèles ORM (fullmargin.models).
Le front parle camelCase : tous les schémas dérivent de CamelModel / CamelInput (schemas.common).
"""
