"""Interface commune des adaptateurs de stockage des valeurs."""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from pilotage_energie.config.constants import (
    NiveauAgregation, StatutPeriode, StatutValeur, TypePeriode,
)
from pilotage_energie.models.entites import (
    FiltrePerimetre, Indicateur, ObjectifIndicateur, PeriodeCollecte,
    Processus, StructureOrganisation, ValeurIndicateur,
)


def noms_rattachables(
    structure: StructureOrganisation, filtre: FiltrePerimetre,
) -> dict[str, list[str]]:
    """Noms acceptes par colonne de rattachement pour un filtre filiere ou filiale.

    Une valeur ne porte que le niveau ou elle a ete saisie (souvent le site
    seul) : elle est retenue si l'une des colonnes designe un noeud du
    perimetre. Dict vide au niveau organisation ou par filiere (pas de filtre).
    """
    if filtre.niveau == NiveauAgregation.PAR_FILIALE:
        filiales = [f.nom for f in structure.filiales_de(filtre.filiere)]
        sites = [
            s.nom for s in structure.sites
            if s.filiale in filiales or (not s.filiale and s.filiere == filtre.filiere)
        ]
        return {"filiere_name": [filtre.filiere], "filiale_name": filiales, "site_name": sites}
    if filtre.niveau == NiveauAgregation.PAR_SITE:
        sites = [s.nom for s in structure.sites_de(filtre.filiale)]
        return {"filiale_name": [filtre.filiale], "site_name": sites}
    return {}


class ValueStore(ABC):
    """Acces au stockage : seule dependance d'entree/sortie du noyau.

    ``transitionner`` doit etre atomique : la mise a jour n'est appliquee
    que si le statut courant est encore ``de`` (compare-and-swap).
    """

    # --- Structure et affectations ---

    @abstractmethod
    def get_structure(self, organisation: str) -> StructureOrganisation:
        """Filieres, filiales et sites declares pour l'organisation."""

    @abstractmethod
    def get_processus_assignes(self, email: str) -> set[str]:
        """Codes des processus affectes a un utilisateur."""

    # --- Catalogue ---

    @abstractmethod
    def lister_indicateurs(self, codes: Optional[Iterable[str]] = None) -> list[Indicateur]:
        """Indicateurs du catalogue, tries par code (tous si ``codes`` est None)."""

    @abstractmethod
    def get_processus(self, code: str) -> Optional[Processus]:
        ...

    @abstractmethod
    def get_selection_organisation(self, organisation: str) -> list[str]:
        """Noms (ou codes) des indicateurs de la derniere selection de l'organisation."""

    # --- Periodes ---

    @abstractmethod
    def get_periode(self, periode_id: str) -> Optional[PeriodeCollecte]:
        ...

    @abstractmethod
    def trouver_periode(
        self, organisation: str, annee: int, type_periode: TypePeriode, numero: Optional[int],
    ) -> Optional[PeriodeCollecte]:
        """Recherche exacte sur la cle (organisation, annee, type, numero)."""

    @abstractmethod
    def lister_periodes(self, organisation: str, annee: Optional[int] = None) -> list[PeriodeCollecte]:
        ...

    @abstractmethod
    def enregistrer_periode(self, periode: PeriodeCollecte) -> PeriodeCollecte:
        """Insere la periode ou met a jour celle qui porte la meme cle."""

    @abstractmethod
    def maj_statut_periode(self, periode_id: str, statut: StatutPeriode) -> bool:
        ...

    # --- Valeurs ---

    @abstractmethod
    def get_valeur(self, valeur_id: str) -> Optional[ValeurIndicateur]:
        """Valeur avec sa periode renseignee."""

    @abstractmethod
    def inserer_valeur(self, valeur: ValeurIndicateur) -> ValeurIndicateur:
        ...

    @abstractmethod
    def lister_valeurs(
        self,
        organisation: str,
        *,
        periode_id: Optional[str] = None,
        indicateur_code: Optional[str] = None,
        processus_codes: Optional[Iterable[str]] = None,
        site: Optional[str] = None,
        statuts: Optional[Iterable[StatutValeur]] = None,
    ) -> list[ValeurIndicateur]:
        ...

    @abstractmethod
    def get_valeurs_validees(
        self, codes: Iterable[str], filtre: FiltrePerimetre, annee: int,
    ) -> list[ValeurIndicateur]:
        """Valeurs validees de l'annee, au niveau du filtre ou en dessous."""

    @abstractmethod
    def transitionner(
        self, valeur_id: str, de: StatutValeur, vers: StatutValeur, champs: dict,
    ) -> bool:
        """Applique ``vers`` et ``champs`` seulement si le statut est encore ``de``."""

    # --- Cibles ---

    @abstractmethod
    def get_objectifs(self, organisation: str, annee: int) -> list[ObjectifIndicateur]:
        ...
