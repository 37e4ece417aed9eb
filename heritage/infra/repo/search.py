"""Assainissement des requêtes de recherche plein texte (LIKE).

`sanitize_search_query` échappe les caractères jokers de LIKE (`%`, `_`), l'antislash et double les
apostrophes, puis plafonne la longueur. Les séquences déjà échappées (`\\%`, `\\_`, `\\\\`, `''`)
sont reconnues comme une seule unité, ce qui rend l'opération idempotente:
`sanitize(sanitize(q)) == sanitize(q)`.
"""

from __future__ import annotations

from typing import Any

ESCAPE_CHAR = "\\"
_ESCAPABLE = {ESCAPE_CHAR, "%", "_"}
DEFAULT_MAX_LENGTH = 200


def sanitize_search_query(query: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Échappe et plafonne une requête libre (longueur comptée en caractères logiques).

    Contrepartie de l'idempotence: une paire `''` saisie telle quelle est lue comme une apostrophe
    déjà échappée. Chercher `''` revient donc à chercher `'` et trouve aussi les textes ne
    contenant qu'une apostrophe simple. De même, `\\%` saisi par l'utilisateur reste un `%`
    littéral.
    """
    if not isinstance(query, str):
        return ""
    text = query.strip()
    units: list[str] = []
    i = 0
    while i < len(text) and len(units) < max_length:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < len(text) else ""
        if ch == ESCAPE_CHAR and nxt in _ESCAPABLE:
            units.append(ch + nxt)
            i += 2
        elif ch == "'" and nxt == "'":
            units.append("''")
            i += 2
        elif ch in _ESCAPABLE:
            units.append(ESCAPE_CHAR + ch)
            i += 1
        elif ch == "'":
            units.append("''")
            i += 1
        else:
            units.append(ch)
            i += 1
    return "".join(units).rstrip()


def like_pattern(sanitized: str) -> str:
    """Motif `%...%` à lier comme paramètre (ESCAPE '\\').

    La valeur étant transmise en paramètre lié, les apostrophes doublées redeviennent simples pour
    conserver la sémantique littérale de la recherche.
    """
    return f"%{sanitized.replace(chr(39) * 2, chr(39))}%"
