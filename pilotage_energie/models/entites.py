"""Modeles de donnees : hierarchie, periodes, catalogue, valeurs et consolidation."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from pilotage_energie.config.constants import (
    ClassePerformance, ModeAgregation, MOIS, MOTS_CLES_AGREGATION,
    Niveau, NiveauAgregation, Role, StatutPeriode, StatutValeur, TypePeriode,
    SEUIL_BONNE, SEUIL_EXCELLENTE, SEUIL_MOYENNE,
)
from pilotage_energie.utils.date_utils import maintenant


_MODE_DECLARE = re.compile(r"^([a-z]+)\s*(?:\(.*\))?$")


def _nouvel_id() -> str:
    return str(uuid.uuid4())


# --- Hierarchie ---

@dataclass
class Filiere:
    nom: str
    organisation: str
    localisation: Optional[str] = None


@dataclass
class Filiale:
    nom: str
    organisation: str
    filiere: Optional[str] = None
    localisation: Optional[str] = None


@dataclass
class Site:
    nom: str
    organisation: str
    filiere: Optional[str] = None
    filiale: Optional[str] = None


@dataclass
class StructureOrganisation:
    """Structure d'une organisation : simple (sites seuls) ou complexe."""
    organisation: str
    filieres: list[Filiere] = field(default_factory=list)
    filiales: list[Filiale] = field(default_factory=list)
    sites: list[Site] = field(default_factory=list)

    @property
    def est_complexe(self) -> bool:
        return len(self.filieres) > 0 or len(self.filiales) > 0

    def get_filiere(self, nom: str) -> Optional[Filiere]:
        return next((f for f in self.filieres if f.nom == nom), None)

    def get_filiale(self, nom: str) -> Optional[Filiale]:
        return next((f for f in self.filiales if f.nom == nom), None)

    def get_site(self, nom: str) -> Optional[Site]:
        return next((s for s in self.sites if s.nom == nom), None)

    def filiales_de(self, filiere: str) -> list[Filiale]:
        return [f for f in self.filiales if f.filiere == filiere]

    def sites_de(self, filiale: str) -> list[Site]:
        return [s for s in self.sites if s.filiale == filiale]

    def rattachement(
        self,
        filiere: Optional[str] = None,
        filiale: Optional[str] = None,
        site: Optional[str] = None,
    ) -> tuple[Optional[str], Optional[str], Optional[str]]:
        """Complete la chaine (filiere, filiale, site) a partir du niveau le plus fin connu."""
        if site:
            s = self.get_site(site)
            if s is not None:
                filiale = filiale or s.filiale
                filiere = filiere or s.filiere
        if filiale:
            fl = self.get_filiale(filiale)
            if fl is not None:
                filiere = filiere or fl.filiere
        return filiere, filiale, site

    def verifier_invariants(self) -> list[str]:
        """Retourne les violations de structure (liste vide si coherente)."""
        erreurs = []
        noms_filieres = {f.nom for f in self.filieres}
        for fl in self.filiales:
            if fl.filiere is not None and fl.filiere not in noms_filieres:
                erreurs.append(f"Filiale {fl.nom} : filiere inconnue {fl.filiere}")
        noms_filiales = {f.nom for f in self.filiales}
        for s in self.sites:
            if self.est_complexe:
                if not s.filiale:
                    erreurs.append(f"Site {s.nom} : rattachement a une filiale obligatoire")
                elif s.filiale not in noms_filiales:
                    erreurs.append(f"Site {s.nom} : filiale inconnue {s.filiale}")
            elif s.filiere or s.filiale:
                erreurs.append(f"Site {s.nom} : organisation simple, pas de filiere/filiale")
        return erreurs


# --- Acteurs ---

@dataclass
class Acteur:
    """Utilisateur agissant sur les valeurs (contributeur, validateur, lecteur)."""
    email: str
    role: Role = Role.INVITE
    organisation: str = ""
    filiere: Optional[str] = None
    filiale: Optional[str] = None
    site: Optional[str] = None
    processus: set[str] = field(default_factory=set)

    @property
    def niveau(self) -> Niveau:
        if self.site:
            return Niveau.SITE
        if self.filiale:
            return Niveau.FILIALE
        if self.filiere:
            return Niveau.FILIERE
        return Niveau.ORGANISATION


# --- Periodes ---

@dataclass
class PeriodeCollecte:
    """Periode de collecte (mois, trimestre ou annee) d'une organisation."""
    id: str = field(default_factory=_nouvel_id)
    organisation: str = ""
    annee: int = 0
    type_periode: TypePeriode = TypePeriode.MOIS
    numero: Optional[int] = None
    date_debut: Optional[date] = None
    date_fin: Optional[date] = None
    statut: StatutPeriode = StatutPeriode.OUVERTE

    @property
    def est_ouverte(self) -> bool:
        return self.statut == StatutPeriode.OUVERTE

    @property
    def est_cloturee(self) -> bool:
        return self.statut == StatutPeriode.CLOTUREE


# --- Catalogue ---

@dataclass
class Processus:
    code: str
    nom: str = ""
    description: Optional[str] = None
    indicateurs: list[str] = field(default_factory=list)


@dataclass
class Indicateur:
    """Definition d'un indicateur du catalogue."""
    code: str
    nom: str = ""
    description: Optional[str] = None
    unite: Optional[str] = None
    type: Optional[str] = None
    formule: Optional[str] = None
    processus_code: Optional[str] = None
    frequence: Optional[str] = None
    axe_energetique: Optional[str] = None
    enjeux: Optional[str] = None
    normes: Optional[str] = None
    critere: Optional[str] = None

    @property
    def mode_agregation(self) -> ModeAgregation:
        """Mode de remontee declare par la formule, a defaut par le type.

        Seul un mot-cle explicite compte : "Somme", "moyenne" ou "SUM(E1)".
        Un libelle libre ("Total kWh / tonnes") ne declare rien.
        """
        for texte in (self.formule, self.type):
            if not texte:
                continue
            m = _MODE_DECLARE.match(texte.strip().lower())
            if m is None:
                continue
            for mode, mots in MOTS_CLES_AGREGATION.items():
                if m.group(1) in mots:
                    return mode
        return ModeAgregation.AUCUN


@dataclass
class ObjectifIndicateur:
    """Cible annuelle d'un indicateur pour un noeud de la hierarchie."""
    organisation: str
    indicateur_code: str
    annee: int
    valeur: Optional[float] = None
    filiere: Optional[str] = None
    filiale: Optional[str] = None
    site: Optional[str] = None


# --- Valeurs ---

@dataclass
class ValeurIndicateur:
    """Une saisie numerique pour un indicateur, un noeud et une periode."""
    id: str = field(default_factory=_nouvel_id)
    indicateur_code: str = ""
    processus_code: str = ""
    organisation: str = ""
    filiere: Optional[str] = None
    filiale: Optional[str] = None
    site: Optional[str] = None
    periode_id: str = ""
    valeur: Optional[float] = None
    unite: Optional[str] = None
    statut: StatutValeur = StatutValeur.BROUILLON
    commentaire: Optional[str] = None
    soumis_par: Optional[str] = None
    soumis_le: Optional[datetime] = None
    valide_par: Optional[str] = None
    valide_le: Optional[datetime] = None
    cree_le: datetime = field(default_factory=maintenant)
    maj_le: datetime = field(default_factory=maintenant)
    periode: Optional[PeriodeCollecte] = None

    @property
    def niveau_proprietaire(self) -> Niveau:
        """Niveau de saisie : le plus fin des identifiants renseignes."""
        if self.site:
            return Niveau.SITE
        if self.filiale:
            return Niveau.FILIALE
        if self.filiere:
            return Niveau.FILIERE
        return Niveau.ORGANISATION


# --- Consolidation ---

@dataclass(frozen=True)
class FiltrePerimetre:
    """Perimetre d'agregation : niveau et selection courante."""
    organisation: str
    niveau: NiveauAgregation = NiveauAgregation.ORGANISATION_GLOBAL
    filiere: Optional[str] = None
    filiale: Optional[str] = None


def classer_performance(performance: Optional[float]) -> Optional[ClassePerformance]:
    """Classe une performance (en %) ; None si la performance est inconnue."""
    if performance is None:
        return None
    if performance >= SEUIL_EXCELLENTE:
        return ClassePerformance.EXCELLENTE
    if performance >= SEUIL_BONNE:
        return ClassePerformance.BONNE
    if performance >= SEUIL_MOYENNE:
        return ClassePerformance.MOYENNE
    return ClassePerformance.FAIBLE


@dataclass
class LigneConsolidee:
    """Vue consolidee d'un indicateur pour un noeud et une annee (lecture seule)."""
    organisation: str
    annee: int
    code: str
    niveau: NiveauAgregation
    noeud: str
    indicateur: Indicateur
    filieres: list[str] = field(default_factory=list)
    filiales: list[str] = field(default_factory=list)
    sites: list[str] = field(default_factory=list)
    valeur: Optional[float] = None
    valeur_precedente: Optional[float] = None
    cible: Optional[float] = None
    variation: Optional[str] = None
    variation_pourcent: Optional[float] = None
    performance_pourcent: Optional[float] = None
    mensuel: list[Optional[float]] = field(default_factory=lambda: [None] * 12)
    performances_mensuelles: list[Optional[float]] = field(default_factory=lambda: [None] * 12)
    trimestriel: list[Optional[float]] = field(default_factory=lambda: [None] * 4)

    @property
    def classe_performance(self) -> Optional[ClassePerformance]:
        return classer_performance(self.performance_pourcent)

    def valeur_mois(self, mois: int) -> Optional[float]:
        return self.mensuel[mois - 1]

    def to_dict(self) -> dict:
        """Representation a plat, colonnes des tables consolidees."""
        ind = self.indicateur
        data = {
            "organization_name": self.organisation,
            "year": self.annee,
            "code": self.code,
            "niveau": self.niveau.value,
            "noeud": self.noeud,
            "filiere_names": list(self.filieres),
            "filiale_names": list(self.filiales),
            "site_names": list(self.sites),
            "indicateur": ind.nom,
            "definition": ind.description,
            "processus_code": ind.processus_code,
            "frequence": ind.frequence,
            "unite": ind.unite,
            "type": ind.type,
            "formule": ind.formule,
            "axe_energetique": ind.axe_energetique,
            "enjeux": ind.enjeux,
            "normes": ind.normes,
            "critere": ind.critere,
            "value": self.valeur,
            "valeur_precedente": self.valeur_precedente,
            "cible": self.cible,
            "variation": self.variation,
            "variations_pourcent": self.variation_pourcent,
            "performances_pourcent": self.performance_pourcent,
        }
        for i, nom_mois in enumerate(MOIS):
            data[nom_mois] = self.mensuel[i]
            data[f"perf_{nom_mois}"] = self.performances_mensuelles[i]
        for i, v in enumerate(self.trimestriel, start=1):
            data[f"t{i}"] = v
        return data
