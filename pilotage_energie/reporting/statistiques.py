"""Statistiques de suivi des saisies et des validations."""

from dataclasses import dataclass
from typing import Iterable, Optional

from pilotage_energie.config.constants import StatutValeur, TypePeriode
from pilotage_energie.models.entites import Acteur, ValeurIndicateur
from pilotage_energie.referentiel.periodes import RegistrePeriodes
from pilotage_energie.utils.number_utils import pourcentage_entier
from pilotage_energie.workflow.machine_etats import MachineEtats
from pilotage_energie.workflow.saisie import ServiceSaisie


@dataclass
class StatistiquesSaisie:
    total: int = 0
    brouillons: int = 0
    soumises: int = 0
    validees: int = 0
    rejetees: int = 0

    @property
    def taux_validation(self) -> int:
        """Part des saisies validees (en %)."""
        return pourcentage_entier(self.validees, self.total)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "draft": self.brouillons,
            "submitted": self.soumises,
            "validated": self.validees,
            "rejected": self.rejetees,
            "performance": self.taux_validation,
        }


@dataclass
class StatistiquesValidation:
    validees: int = 0
    rejetees: int = 0

    @property
    def total(self) -> int:
        return self.validees + self.rejetees

    @property
    def taux_validation(self) -> int:
        """Part des valeurs revues qui ont ete validees (en %)."""
        return pourcentage_entier(self.validees, self.total)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "validated": self.validees,
            "rejected": self.rejetees,
            "performance": self.taux_validation,
        }


def compter_statuts(valeurs: Iterable[ValeurIndicateur]) -> StatistiquesSaisie:
    stats = StatistiquesSaisie()
    for v in valeurs:
        stats.total += 1
        if v.statut == StatutValeur.BROUILLON:
            stats.brouillons += 1
        elif v.statut == StatutValeur.SOUMISE:
            stats.soumises += 1
        elif v.statut == StatutValeur.VALIDEE:
            stats.validees += 1
        elif v.statut == StatutValeur.REJETEE:
            stats.rejetees += 1
    return stats


def statistiques_contributeur(
    service: ServiceSaisie, acteur: Acteur, periode_id: Optional[str] = None,
) -> StatistiquesSaisie:
    """Repartition par statut des saisies du noeud du contributeur."""
    return compter_statuts(service.lister_saisies(acteur, periode_id))


def statistiques_validateur(
    machine: MachineEtats, acteur: Acteur, annee: int, mois: int,
) -> StatistiquesValidation:
    """Valeurs revues par un validateur sur un mois (validees et rejetees).

    Un mois sans periode de collecte donne des statistiques vides.
    """
    periode = RegistrePeriodes(machine.store).trouver_periode(
        acteur.organisation, annee, TypePeriode.MOIS, mois
    )
    if periode is None:
        return StatistiquesValidation()
    revues = machine.lister_a_valider(
        acteur, periode.id, statuts=[StatutValeur.VALIDEE, StatutValeur.REJETEE]
    )
    return StatistiquesValidation(
        validees=sum(1 for v in revues if v.statut == StatutValeur.VALIDEE),
        rejetees=sum(1 for v in revues if v.statut == StatutValeur.REJETEE),
    )
