"""
Package des collecteurs de données du rapport machine

Ce package contient :
- Le collecteur de base (classe abstraite) et l'exécuteur de commandes
- Les collecteurs OS, CPU, mémoire, disques, réseau et session
- Les sondes spécifiques par plateforme
"""
