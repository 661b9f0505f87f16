"""Barres de pourcentage"""


def render_bar(value: float, width: int, filled: str = '█', empty: str = '░') -> str:
    """
    Barre de largeur fixe

    Args:
        value: Pourcentage, borné à [0, 100]
        width: Nombre de caractères
        filled: Caractère de la partie remplie
        empty: Caractère de la partie vide

    Returns:
        str: Barre de exactement `width` caractères
    """
    value = min(max(value, 0.0), 100.0)
    # Arrondi au demi supérieur (round() arrondit au pair)
    filled_count = min(int(value / 100.0 * width + 0.5), width)
    return filled * filled_count + empty * (width - filled_count)
