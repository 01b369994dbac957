"""Resolution de la structure d'une organisation et du perimetre d'agregation.

Une organisation est complexe des qu'elle declare au moins une filiere ou
une filiale. La selection courante (filiere, filiale) determine alors le
perimetre consolide :

- organisation simple          -> organisation globale
- aucune filiere selectionnee  -> une ligne par filiere
- filiere seule                -> une ligne par filiale de la filiere
- filiere + filiale            -> une ligne par site de la filiale
"""

import logging
from typing import Optional

from pilotage_energie.config.constants import NiveauAgregation
from pilotage_energie.core.exceptions import ScopeConfigurationError, TypeErreur
from pilotage_energie.core.resultats import ResultatScope
from pilotage_energie.database.value_store import ValueStore
from pilotage_energie.models.entites import (
    Acteur, FiltrePerimetre, StructureOrganisation, ValeurIndicateur,
)

logger = logging.getLogger("pilotage_energie.hierarchie")


def est_complexe(nb_filieres: int, nb_filiales: int) -> bool:
    return nb_filieres > 0 or nb_filiales > 0


class ResolveurHierarchie:
    """Determine le perimetre d'agregation pour une organisation donnee."""

    def __init__(self, structure: StructureOrganisation):
        self.structure = structure

    @classmethod
    def depuis_store(cls, store: ValueStore, organisation: str) -> "ResolveurHierarchie":
        return cls(store.get_structure(organisation))

    @property
    def organisation(self) -> str:
        return self.structure.organisation

    @property
    def est_complexe(self) -> bool:
        return est_complexe(len(self.structure.filieres), len(self.structure.filiales))

    def resoudre_scope(
        self,
        filiere: Optional[str] = None,
        filiale: Optional[str] = None,
        perimetre: Optional[Acteur] = None,
    ) -> ResultatScope:
        """Traduit la selection courante en filtre de consolidation.

        Args:
            filiere: Filiere selectionnee (optionnelle).
            filiale: Filiale selectionnee (exige la filiere parente).
            perimetre: Utilisateur dont le rattachement restreint la vue.

        Returns:
            ResultatScope portant le filtre, ou le type de refus.
        """
        org = self.organisation
        if not self.est_complexe:
            # Organisation simple : la selection est sans objet
            return ResultatScope.succes(FiltrePerimetre(org, NiveauAgregation.ORGANISATION_GLOBAL))

        if perimetre is not None:
            refus = self._verifier_perimetre(filiere, filiale, perimetre)
            if refus is not None:
                return refus
            filiere = filiere or perimetre.filiere
            filiale = filiale or perimetre.filiale
            if filiale and not filiere:
                fl = self.structure.get_filiale(filiale)
                filiere = fl.filiere if fl else None

        if filiale and not filiere:
            return ResultatScope.echec(
                TypeErreur.SELECTION_INVALIDE,
                f"Filiale {filiale} selectionnee sans sa filiere parente",
            )
        if not filiere:
            return ResultatScope.succes(FiltrePerimetre(org, NiveauAgregation.PAR_FILIERE))

        if self.structure.get_filiere(filiere) is None:
            return ResultatScope.echec(TypeErreur.INTROUVABLE, f"Filiere inconnue : {filiere}")
        if not filiale:
            return ResultatScope.succes(
                FiltrePerimetre(org, NiveauAgregation.PAR_FILIALE, filiere=filiere)
            )

        fl = self.structure.get_filiale(filiale)
        if fl is None:
            return ResultatScope.echec(TypeErreur.INTROUVABLE, f"Filiale inconnue : {filiale}")
        if fl.filiere != filiere:
            return ResultatScope.echec(
                TypeErreur.SELECTION_INVALIDE,
                f"La filiale {filiale} n'appartient pas a la filiere {filiere}",
            )
        return ResultatScope.succes(
            FiltrePerimetre(org, NiveauAgregation.PAR_SITE, filiere=filiere, filiale=filiale)
        )

    def _verifier_perimetre(
        self, filiere: Optional[str], filiale: Optional[str], perimetre: Acteur,
    ) -> Optional[ResultatScope]:
        if perimetre.organisation and perimetre.organisation != self.organisation:
            return ResultatScope.echec(
                TypeErreur.NON_AUTORISE,
                f"{perimetre.email} n'est pas rattache a {self.organisation}",
            )
        if perimetre.filiere and filiere and filiere != perimetre.filiere:
            return ResultatScope.echec(
                TypeErreur.NON_AUTORISE,
                f"Filiere {filiere} hors du perimetre de {perimetre.email}",
            )
        if perimetre.filiale and filiale and filiale != perimetre.filiale:
            return ResultatScope.echec(
                TypeErreur.NON_AUTORISE,
                f"Filiale {filiale} hors du perimetre de {perimetre.email}",
            )
        return None

    # ============================
    # UTILISATION PAR LE MOTEUR
    # ============================

    def verifier_filtre(self, filtre: FiltrePerimetre) -> None:
        """Leve ScopeConfigurationError si le filtre ne correspond pas a la structure."""
        if filtre.organisation != self.organisation:
            raise ScopeConfigurationError(
                f"Filtre pour {filtre.organisation}, structure de {self.organisation}"
            )
        for violation in self.structure.verifier_invariants():
            logger.warning("Structure incoherente (%s) : %s", self.organisation, violation)
        if filtre.niveau == NiveauAgregation.ORGANISATION_GLOBAL:
            return
        if not self.est_complexe:
            raise ScopeConfigurationError(
                f"{self.organisation} est une organisation simple : niveau {filtre.niveau.value} impossible"
            )
        if filtre.niveau == NiveauAgregation.PAR_FILIERE:
            return
        if not filtre.filiere or self.structure.get_filiere(filtre.filiere) is None:
            raise ScopeConfigurationError(f"Filiere inconnue : {filtre.filiere}")
        if filtre.niveau == NiveauAgregation.PAR_FILIALE:
            return
        fl = self.structure.get_filiale(filtre.filiale) if filtre.filiale else None
        if fl is None:
            raise ScopeConfigurationError(f"Filiale inconnue : {filtre.filiale}")
        if fl.filiere != filtre.filiere:
            raise ScopeConfigurationError(
                f"La filiale {filtre.filiale} n'appartient pas a la filiere {filtre.filiere}"
            )

    def affecter(
        self, valeur: ValeurIndicateur, filtre: FiltrePerimetre,
    ) -> Optional[str]:
        """Noeud du perimetre auquel la valeur contribue, None si hors perimetre."""
        filiere, filiale, site = self.structure.rattachement(
            valeur.filiere, valeur.filiale, valeur.site
        )
        if filtre.niveau == NiveauAgregation.ORGANISATION_GLOBAL:
            return self.organisation
        if filtre.niveau == NiveauAgregation.PAR_FILIERE:
            return filiere or None
        if filtre.niveau == NiveauAgregation.PAR_FILIALE:
            if filiere != filtre.filiere or not filiale:
                return None
            return filiale
        if filiere != filtre.filiere or filiale != filtre.filiale or not site:
            return None
        return site
