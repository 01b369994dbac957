"""Utilitaires pour le traitement des valeurs numeriques saisies."""

import math
from typing import Optional


def parser_valeur(valeur) -> Optional[float]:
    """Parse une valeur saisie (nombre, "1 234,5", "1234.5" ou vide).

    Retourne None pour une saisie vide. Leve ValueError si la saisie
    n'est pas un nombre fini.
    """
    if valeur is None:
        return None
    if isinstance(valeur, bool):
        raise ValueError(f"Valeur non numerique : {valeur!r}")
    if isinstance(valeur, (int, float)):
        resultat = float(valeur)
    else:
        v = str(valeur).strip()
        if not v:
            return None
        v = v.replace(" ", "").replace("\u00a0", "").replace("\u202f", "")
        if "," in v and "." in v:
            # 1.234,56 -> format europeen, 1,234.56 -> format anglo-saxon
            if v.rindex(",") > v.rindex("."):
                v = v.replace(".", "").replace(",", ".")
            else:
                v = v.replace(",", "")
        else:
            v = v.replace(",", ".")
        resultat = float(v)
    if not math.isfinite(resultat):
        raise ValueError(f"Valeur non finie : {valeur!r}")
    return resultat


def arrondir(valeur: Optional[float], decimales: int = 2) -> Optional[float]:
    if valeur is None:
        return None
    return round(valeur, decimales)


def est_nul_ou_zero(valeur: Optional[float]) -> bool:
    return valeur is None or valeur == 0


def pourcentage_entier(partie: int, total: int) -> int:
    """Pourcentage arrondi a l'entier (demi vers le haut), 0 si total est nul."""
    if not total:
        return 0
    return int(math.floor(partie / total * 100 + 0.5))
