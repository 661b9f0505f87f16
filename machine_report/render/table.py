"""
Tableau à bordures du rapport

Largeurs fixes: colonne libellé de 12 caractères, colonne valeur de 32.
Largeur totale = libellé + valeur + 7 (trois bordures et quatre espaces).
"""

from dataclasses import dataclass


LABEL_WIDTH = 12
DATA_WIDTH = 32


@dataclass(frozen=True)
class BoxChars:
    top_left: str
    top_right: str
    bottom_left: str
    bottom_right: str
    horizontal: str
    vertical: str
    t_down: str
    t_up: str
    t_right: str
    t_left: str
    cross: str
    bar_filled: str
    bar_empty: str


UNICODE_CHARS = BoxChars('┌', '┐', '└', '┘', '─', '│', '┬', '┴', '├', '┤', '┼', '█', '░')
ASCII_CHARS = BoxChars('+', '+', '+', '+', '-', '|', '+', '+', '+', '+', '+', '#', '.')


def fit(text: str, width: int) -> str:
    """Complète avec des espaces ou tronque avec '...' à la largeur exacte"""
    if len(text) > width:
        if width <= 3:
            return text[:width]
        return text[:width - 3] + "..."
    return text.ljust(width)


class TableRenderer:
    """Produit les lignes du tableau, chacune terminée par un saut de ligne"""

    def __init__(self, chars: BoxChars, label_width: int = LABEL_WIDTH, data_width: int = DATA_WIDTH):
        self.chars = chars
        self.label_width = label_width
        self.data_width = data_width
        self.total_width = label_width + data_width + 7

    def top_header(self) -> str:
        c = self.chars
        return c.top_left + c.t_down * (self.total_width - 2) + c.top_right + "\n"

    def header_bottom(self) -> str:
        c = self.chars
        return c.t_right + c.t_up * (self.total_width - 2) + c.t_left + "\n"

    def centered(self, text: str) -> str:
        inner = self.total_width - 2
        if len(text) > inner:
            text = text[:inner - 3] + "..."
        padding, extra = divmod(inner - len(text), 2)
        return self.chars.vertical + " " * padding + text + " " * (padding + extra) + self.chars.vertical + "\n"

    def _divider(self, left: str, middle: str, right: str) -> str:
        h = self.chars.horizontal
        return left + h * (self.label_width + 2) + middle + h * (self.data_width + 2) + right + "\n"

    def top_divider(self) -> str:
        return self._divider(self.chars.t_right, self.chars.t_down, self.chars.t_left)

    def middle_divider(self) -> str:
        return self._divider(self.chars.t_right, self.chars.cross, self.chars.t_left)

    def footer(self) -> str:
        return self._divider(self.chars.bottom_left, self.chars.t_up, self.chars.bottom_right)

    def row(self, label: str, value: str) -> str:
        v = self.chars.vertical
        return f"{v} {fit(label, self.label_width)} {v} {fit(value, self.data_width)} {v}\n"
