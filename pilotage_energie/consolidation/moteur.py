"""Moteur de consolidation des valeurs validees.

Pour un perimetre et une annee, produit une ligne par (indicateur, noeud) :
valeurs mensuelles et trimestrielles, valeur courante, valeur de l'annee
precedente, cible, variation et performance.

Resolution d'un creneau (mois, trimestre ou annee) pour un noeud :
  1. une valeur saisie au niveau du noeud fait foi (la plus recente) ;
  2. sinon chaque enfant direct est resolu selon la meme regle, puis les
     resultats sont combines selon le mode d'agregation de l'indicateur ;
  3. sans mode declare, le resultat enfant issu de la saisie la plus
     recente est retenu.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from pilotage_energie.config.constants import (
    ANNEE_MAX, ANNEE_MIN, ModeAgregation, NiveauAgregation, TypePeriode,
)
from pilotage_energie.config.settings import ConsolidationConfig
from pilotage_energie.consolidation.calculs import (
    agreger, calculer_performance, calculer_variation, libelle_variation,
)
from pilotage_energie.core.exceptions import ScopeConfigurationError
from pilotage_energie.database.value_store import ValueStore
from pilotage_energie.hierarchie.resolveur import ResolveurHierarchie
from pilotage_energie.models.entites import (
    Acteur, FiltrePerimetre, Indicateur, LigneConsolidee, ObjectifIndicateur,
    StructureOrganisation, ValeurIndicateur,
)
from pilotage_energie.referentiel.catalogue import CatalogueIndicateurs

logger = logging.getLogger("pilotage_energie.consolidation")


@dataclass
class SerieAnnuelle:
    """Valeurs d'un noeud pour une annee, par granularite."""
    annuelle: Optional[float] = None
    mensuel: list[Optional[float]] = field(default_factory=lambda: [None] * 12)
    trimestriel: list[Optional[float]] = field(default_factory=lambda: [None] * 4)

    @property
    def courante(self) -> Optional[float]:
        """Valeur annuelle, sinon dernier mois renseigne, sinon dernier trimestre."""
        if self.annuelle is not None:
            return self.annuelle
        for v in reversed(self.mensuel):
            if v is not None:
                return v
        for v in reversed(self.trimestriel):
            if v is not None:
                return v
        return None


# Chemin d'une saisie : ((profondeur, nom), ...) pour filiere=1, filiale=2, site=3
Chemin = tuple[tuple[int, str], ...]
Saisie = tuple[ValeurIndicateur, Chemin]

PROFONDEUR_NIVEAU = {
    NiveauAgregation.ORGANISATION_GLOBAL: 0,
    NiveauAgregation.PAR_FILIERE: 1,
    NiveauAgregation.PAR_FILIALE: 2,
    NiveauAgregation.PAR_SITE: 3,
}


def chemin_valeur(valeur: ValeurIndicateur, structure: StructureOrganisation) -> Chemin:
    filiere, filiale, site = structure.rattachement(valeur.filiere, valeur.filiale, valeur.site)
    return tuple((p, nom) for p, nom in ((1, filiere), (2, filiale), (3, site)) if nom)


def resoudre_creneau(
    saisies: list[Saisie], profondeur: int, mode: ModeAgregation,
) -> Optional[tuple[Optional[float], datetime]]:
    """Valeur d'un noeud pour un creneau, avec la date de la saisie la plus recente utilisee.

    Les enfants directs sont resolus d'abord, chacun selon la meme regle.
    """
    if not saisies:
        return None
    propres = [v for v, chemin in saisies if all(p <= profondeur for p, _ in chemin)]
    if propres:
        v = max(propres, key=lambda v: v.cree_le)
        return v.valeur, v.cree_le

    par_enfant: dict[tuple[int, str], list[Saisie]] = defaultdict(list)
    for v, chemin in saisies:
        enfant = next(n for n in chemin if n[0] > profondeur)
        par_enfant[enfant].append((v, chemin))
    resultats = [
        r for r in (resoudre_creneau(s, enfant[0], mode) for enfant, s in par_enfant.items())
        if r is not None
    ]
    if not resultats:
        return None

    if mode != ModeAgregation.AUCUN:
        return agreger((r[0] for r in resultats), mode), max(r[1] for r in resultats)
    renseignes = [r for r in resultats if r[0] is not None]
    return max(renseignes or resultats, key=lambda r: r[1])


def construire_serie(saisies: list[Saisie], profondeur: int, mode: ModeAgregation) -> SerieAnnuelle:
    creneaux: dict[tuple, list[Saisie]] = defaultdict(list)
    for valeur, chemin in saisies:
        periode = valeur.periode
        if periode is None:
            logger.debug("Valeur %s sans periode jointe, ignoree", valeur.id)
            continue
        creneaux[(periode.type_periode, periode.numero)].append((valeur, chemin))

    serie = SerieAnnuelle()
    for (type_periode, numero), contenu in creneaux.items():
        resultat = resoudre_creneau(contenu, profondeur, mode)
        v = resultat[0] if resultat else None
        if type_periode == TypePeriode.ANNEE:
            serie.annuelle = v
        elif type_periode == TypePeriode.MOIS:
            serie.mensuel[numero - 1] = v
        elif type_periode == TypePeriode.TRIMESTRE:
            serie.trimestriel[numero - 1] = v
    return serie


def chaine_cible(
    filtre: FiltrePerimetre, noeud: str,
) -> list[tuple[Optional[str], Optional[str], Optional[str]]]:
    """Rattachements a essayer pour la cible d'un noeud, du plus precis a l'organisation."""
    org = (None, None, None)
    if filtre.niveau == NiveauAgregation.PAR_FILIERE:
        return [(noeud, None, None), org]
    if filtre.niveau == NiveauAgregation.PAR_FILIALE:
        return [(filtre.filiere, noeud, None), (filtre.filiere, None, None), org]
    if filtre.niveau == NiveauAgregation.PAR_SITE:
        return [
            (filtre.filiere, filtre.filiale, noeud),
            (filtre.filiere, filtre.filiale, None),
            (filtre.filiere, None, None),
            org,
        ]
    return [org]


def trouver_cible(
    objectifs: list[ObjectifIndicateur], code: str, filtre: FiltrePerimetre, noeud: str,
) -> Optional[float]:
    par_rattachement = {
        (o.filiere, o.filiale, o.site): o.valeur
        for o in objectifs if o.indicateur_code == code
    }
    for cle in chaine_cible(filtre, noeud):
        if cle in par_rattachement:
            return par_rattachement[cle]
    return None


class MoteurConsolidation:
    """Consolide les valeurs validees pour un perimetre et une annee."""

    def __init__(self, store: ValueStore, config: Optional[ConsolidationConfig] = None):
        self.store = store
        self.config = config or ConsolidationConfig()
        self.catalogue = CatalogueIndicateurs(store)

    def consolider(self, filtre: FiltrePerimetre, annee: int) -> list[LigneConsolidee]:
        """Lignes consolidees triees par code d'indicateur puis par noeud.

        Raises:
            ScopeConfigurationError: perimetre incoherent avec la structure
                de l'organisation, ou annee invalide.
        """
        if isinstance(annee, bool) or not isinstance(annee, int) or not ANNEE_MIN <= annee <= ANNEE_MAX:
            raise ScopeConfigurationError(f"Annee invalide : {annee!r}")

        structure = self.store.get_structure(filtre.organisation)
        resolveur = ResolveurHierarchie(structure)
        resolveur.verifier_filtre(filtre)

        indicateurs = {i.code: i for i in self.catalogue.lister_indicateurs_organisation(filtre.organisation)}
        if not indicateurs:
            return []

        courantes = self._regrouper(resolveur, filtre, annee, indicateurs)
        precedentes = (
            self._regrouper(resolveur, filtre, annee - 1, indicateurs)
            if self.config.inclure_annee_precedente and annee > ANNEE_MIN
            else {}
        )
        objectifs = self.store.get_objectifs(filtre.organisation, annee)

        lignes = [
            self._construire_ligne(
                filtre, annee, indicateurs[code], noeud,
                courantes.get((code, noeud), []), precedentes.get((code, noeud), []), objectifs,
            )
            for code, noeud in sorted(set(courantes) | set(precedentes))
        ]
        logger.info(
            "Consolidation %s %s/%s : %d lignes",
            filtre.organisation, filtre.niveau.value, annee, len(lignes),
        )
        return lignes

    def consolider_selection(
        self,
        organisation: str,
        annee: int,
        filiere: Optional[str] = None,
        filiale: Optional[str] = None,
        perimetre: Optional[Acteur] = None,
    ) -> list[LigneConsolidee]:
        """Resout la selection courante puis consolide ; un refus leve l'ErreurDomaine associee."""
        resolveur = ResolveurHierarchie.depuis_store(self.store, organisation)
        filtre = resolveur.resoudre_scope(filiere, filiale, perimetre).verifier().filtre
        return self.consolider(filtre, annee)

    def _regrouper(
        self,
        resolveur: ResolveurHierarchie,
        filtre: FiltrePerimetre,
        annee: int,
        indicateurs: dict[str, Indicateur],
    ) -> dict[tuple[str, str], list[Saisie]]:
        groupes = defaultdict(list)
        for valeur in self.store.get_valeurs_validees(sorted(indicateurs), filtre, annee):
            if valeur.indicateur_code not in indicateurs:
                continue
            noeud = resolveur.affecter(valeur, filtre)
            if noeud is None:
                continue
            chemin = chemin_valeur(valeur, resolveur.structure)
            groupes[(valeur.indicateur_code, noeud)].append((valeur, chemin))
        return groupes

    def _construire_ligne(
        self,
        filtre: FiltrePerimetre,
        annee: int,
        indicateur: Indicateur,
        noeud: str,
        saisies: list[Saisie],
        saisies_precedentes: list[Saisie],
        objectifs: list[ObjectifIndicateur],
    ) -> LigneConsolidee:
        decimales = self.config.decimales
        mode = indicateur.mode_agregation
        profondeur = PROFONDEUR_NIVEAU[filtre.niveau]
        serie = construire_serie(saisies, profondeur, mode)
        courante = serie.courante
        precedente = construire_serie(saisies_precedentes, profondeur, mode).courante
        cible = trouver_cible(objectifs, indicateur.code, filtre, noeud)

        noms: dict[int, set[str]] = {1: set(), 2: set(), 3: set()}
        for _, chemin in saisies:
            for p, nom in chemin:
                noms[p].add(nom)

        return LigneConsolidee(
            organisation=filtre.organisation,
            annee=annee,
            code=indicateur.code,
            niveau=filtre.niveau,
            noeud=noeud,
            indicateur=indicateur,
            filieres=sorted(noms[1]),
            filiales=sorted(noms[2]),
            sites=sorted(noms[3]),
            valeur=courante,
            valeur_precedente=precedente,
            cible=cible,
            variation=libelle_variation(courante, precedente),
            variation_pourcent=calculer_variation(courante, precedente, decimales),
            performance_pourcent=calculer_performance(courante, cible, decimales),
            mensuel=serie.mensuel,
            performances_mensuelles=[calculer_performance(v, cible, decimales) for v in serie.mensuel],
            trimestriel=serie.trimestriel,
        )
