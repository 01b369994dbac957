"""Synthese tableau de bord a partir des lignes consolidees."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from pilotage_energie.config.constants import ClassePerformance
from pilotage_energie.models.entites import LigneConsolidee


@dataclass
class SyntheseTableauBord:
    nb_indicateurs: int = 0
    nb_avec_valeur: int = 0
    performance_moyenne: float = 0.0
    meilleur_indicateur: Optional[str] = None
    repartition: dict[ClassePerformance, int] = field(
        default_factory=lambda: {c: 0 for c in ClassePerformance}
    )

    def to_dict(self) -> dict:
        return {
            "totalIndicators": self.nb_indicateurs,
            "indicatorsWithValues": self.nb_avec_valeur,
            "averagePerformance": self.performance_moyenne,
            "topPerformingIndicator": self.meilleur_indicateur,
            "repartition": {c.value: n for c, n in self.repartition.items()},
        }


def synthetiser(lignes: Iterable[LigneConsolidee]) -> SyntheseTableauBord:
    """Agrege les lignes : couverture, performance moyenne et meilleur indicateur.

    Seules les performances connues entrent dans la moyenne et la repartition.
    A performance egale, le premier indicateur dans l'ordre des lignes l'emporte.
    """
    lignes = list(lignes)
    synthese = SyntheseTableauBord(
        nb_indicateurs=len(lignes),
        nb_avec_valeur=sum(1 for l in lignes if l.valeur is not None),
    )
    mesurees = [l for l in lignes if l.performance_pourcent is not None]
    if not mesurees:
        return synthese

    synthese.performance_moyenne = sum(l.performance_pourcent for l in mesurees) / len(mesurees)
    meilleure = max(mesurees, key=lambda l: l.performance_pourcent)
    synthese.meilleur_indicateur = meilleure.indicateur.nom or meilleure.code
    for l in mesurees:
        synthese.repartition[l.classe_performance] += 1
    return synthese
