"""Calculs derives des lignes consolidees.

Une donnee manquante produit un resultat nul, jamais une erreur ni un zero.
"""

import math
from typing import Iterable, Optional

from pilotage_energie.config.constants import ModeAgregation
from pilotage_energie.utils.number_utils import arrondir, est_nul_ou_zero


def _fini(valeur: Optional[float]) -> Optional[float]:
    return valeur if valeur is not None and math.isfinite(valeur) else None


def calculer_variation(
    courante: Optional[float], precedente: Optional[float], decimales: int = 2,
) -> Optional[float]:
    """((courante - precedente) / precedente) * 100, nul si precedente est nulle ou zero."""
    if courante is None or est_nul_ou_zero(precedente):
        return None
    return _fini(arrondir((courante - precedente) / precedente * 100, decimales))


def calculer_performance(
    courante: Optional[float], cible: Optional[float], decimales: int = 2,
) -> Optional[float]:
    """(courante / cible) * 100, nul si la cible est nulle ou zero."""
    if courante is None or est_nul_ou_zero(cible):
        return None
    return _fini(arrondir(courante / cible * 100, decimales))


def libelle_variation(courante: Optional[float], precedente: Optional[float]) -> Optional[str]:
    if courante is None or precedente is None:
        return None
    if courante > precedente:
        return "hausse"
    if courante < precedente:
        return "baisse"
    return "stable"


def agreger(valeurs: Iterable[Optional[float]], mode: ModeAgregation) -> Optional[float]:
    """Combine les valeurs non nulles selon le mode declare (None si aucune)."""
    presentes = [v for v in valeurs if v is not None]
    if not presentes:
        return None
    if mode == ModeAgregation.SOMME:
        return sum(presentes)
    if mode == ModeAgregation.MOYENNE:
        return sum(presentes) / len(presentes)
    if mode == ModeAgregation.MAX:
        return max(presentes)
    if mode == ModeAgregation.MIN:
        return min(presentes)
    raise ValueError(f"Mode d'agregation sans calcul : {mode.value}")
