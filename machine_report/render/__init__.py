"""
Rendu du rapport: tableau à bordures, barres de pourcentage et JSON
"""
