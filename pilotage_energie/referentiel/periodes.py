"""Registre des periodes de collecte (mois, trimestre, annee)."""

import logging
from typing import Optional

from pilotage_energie.config.constants import NUMEROS_PERIODE, StatutPeriode, TypePeriode
from pilotage_energie.core.exceptions import ElementIntrouvable
from pilotage_energie.database.value_store import ValueStore
from pilotage_energie.models.entites import PeriodeCollecte
from pilotage_energie.utils.date_utils import bornes_periode

logger = logging.getLogger("pilotage_energie.periodes")


def normaliser_numero(type_periode: TypePeriode, numero: Optional[int]) -> Optional[int]:
    """Controle le numero d'une periode ; l'annee n'a pas de numero.

    Raises:
        ValueError: numero hors bornes (1-12 pour un mois, 1-4 pour un trimestre).
    """
    type_periode = TypePeriode(type_periode)
    if type_periode == TypePeriode.ANNEE:
        if numero not in (None, 1):
            raise ValueError(f"Une periode annuelle n'a pas de numero (recu {numero})")
        return None
    if numero not in NUMEROS_PERIODE[type_periode]:
        bornes = NUMEROS_PERIODE[type_periode]
        raise ValueError(
            f"Numero de {type_periode.value} invalide : {numero} "
            f"(attendu {bornes.start}-{bornes.stop - 1})"
        )
    return numero


class RegistrePeriodes:
    """Recherche exacte et administration des periodes de collecte."""

    def __init__(self, store: ValueStore):
        self.store = store

    def trouver_periode(
        self, organisation: str, annee: int, type_periode: TypePeriode, numero: Optional[int] = None,
    ) -> Optional[PeriodeCollecte]:
        numero = normaliser_numero(type_periode, numero)
        return self.store.trouver_periode(organisation, annee, TypePeriode(type_periode), numero)

    def resoudre_periode(
        self, organisation: str, annee: int, type_periode: TypePeriode, numero: Optional[int] = None,
    ) -> PeriodeCollecte:
        """Periode correspondant exactement a la cle.

        Raises:
            ElementIntrouvable: aucune periode pour cette cle.
        """
        periode = self.trouver_periode(organisation, annee, type_periode, numero)
        if periode is None:
            raise ElementIntrouvable(
                f"Aucune periode {TypePeriode(type_periode).value} {numero or ''} "
                f"pour {organisation} en {annee}"
            )
        return periode

    def lister_periodes(self, organisation: str, annee: Optional[int] = None) -> list[PeriodeCollecte]:
        return self.store.lister_periodes(organisation, annee)

    def enregistrer_periode(
        self,
        organisation: str,
        annee: int,
        type_periode: TypePeriode,
        numero: Optional[int] = None,
        *,
        date_debut=None,
        date_fin=None,
        statut: StatutPeriode = StatutPeriode.OUVERTE,
    ) -> PeriodeCollecte:
        """Cree la periode, ou met a jour celle qui porte deja la meme cle.

        Les dates par defaut sont les bornes calendaires de la periode.
        """
        type_periode = TypePeriode(type_periode)
        numero = normaliser_numero(type_periode, numero)
        debut_defaut, fin_defaut = bornes_periode(annee, type_periode, numero)
        date_debut = date_debut or debut_defaut
        date_fin = date_fin or fin_defaut
        if date_fin < date_debut:
            raise ValueError(f"Fin de periode {date_fin} anterieure au debut {date_debut}")

        periode = PeriodeCollecte(
            organisation=organisation,
            annee=annee,
            type_periode=type_periode,
            numero=numero,
            date_debut=date_debut,
            date_fin=date_fin,
            statut=StatutPeriode(statut),
        )
        periode = self.store.enregistrer_periode(periode)
        logger.info(
            "Periode %s %s/%s enregistree pour %s (%s)",
            type_periode.value, numero or "-", annee, organisation, periode.statut.value,
        )
        return periode

    def generer_periodes(
        self, organisation: str, annee: int, type_periode: TypePeriode = TypePeriode.MOIS,
    ) -> list[PeriodeCollecte]:
        """Cree toutes les periodes d'une annee pour un type donne."""
        type_periode = TypePeriode(type_periode)
        numeros = [None] if type_periode == TypePeriode.ANNEE else list(NUMEROS_PERIODE[type_periode])
        return [
            self.enregistrer_periode(organisation, annee, type_periode, n)
            for n in numeros
        ]

    def cloturer_periode(self, periode_id: str) -> bool:
        return self._changer_statut(periode_id, StatutPeriode.CLOTUREE)

    def rouvrir_periode(self, periode_id: str) -> bool:
        return self._changer_statut(periode_id, StatutPeriode.OUVERTE)

    def _changer_statut(self, periode_id: str, statut: StatutPeriode) -> bool:
        if self.store.get_periode(periode_id) is None:
            raise ElementIntrouvable(f"Periode inconnue : {periode_id}")
        ok = self.store.maj_statut_periode(periode_id, statut)
        logger.info("Periode %s -> %s", periode_id, statut.value)
        return ok
