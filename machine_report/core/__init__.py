"""
Module Core - Composants principaux du rapport machine

Ce module contient les fonctionnalités de base :
- Configuration et logging
- Modèles de données et exceptions
- Orchestration de la collecte et agrégation
- Installation dans les profils de shell
"""
