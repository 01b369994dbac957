"""Tests du resolveur de hierarchie."""

import logging
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from pilotage_energie.config.constants import NiveauAgregation, Role
from pilotage_energie.core.exceptions import ScopeConfigurationError, SelectionInvalide, TypeErreur
from pilotage_energie.hierarchie.resolveur import ResolveurHierarchie, est_complexe
from pilotage_energie.models.entites import (
    Acteur, Filiale, Filiere, FiltrePerimetre, Site, StructureOrganisation, ValeurIndicateur,
)


def structure_complexe() -> StructureOrganisation:
    return StructureOrganisation(
        organisation="Groupe",
        filieres=[Filiere("Industrie", "Groupe"), Filiere("Services", "Groupe")],
        filiales=[
            Filiale("F1", "Groupe", filiere="Industrie"),
            Filiale("F3", "Groupe", filiere="Services"),
        ],
        sites=[
            Site("S1", "Groupe", filiere="Industrie", filiale="F1"),
            Site("S4", "Groupe", filiere="Services", filiale="F3"),
        ],
    )


def structure_simple() -> StructureOrganisation:
    return StructureOrganisation(organisation="Acme", sites=[Site("Plant1", "Acme")])


class TestComplexite:

    @pytest.mark.parametrize("nb_filieres,nb_filiales,attendu", [
        (0, 0, False), (1, 0, True), (0, 1, True), (3, 5, True),
    ])
    def test_est_complexe(self, nb_filieres, nb_filiales, attendu):
        assert est_complexe(nb_filieres, nb_filiales) is attendu

    def test_structure_complexe(self):
        assert ResolveurHierarchie(structure_complexe()).est_complexe
        assert not ResolveurHierarchie(structure_simple()).est_complexe


class TestResoudreScope:

    def setup_method(self):
        self.resolveur = ResolveurHierarchie(structure_complexe())

    @pytest.mark.parametrize("filiere,filiale", [
        (None, None), ("Industrie", None), ("Industrie", "F1"), (None, "F1"), ("Inconnue", "X"),
    ])
    def test_organisation_simple_toujours_globale(self, filiere, filiale):
        r = ResolveurHierarchie(structure_simple()).resoudre_scope(filiere, filiale)
        assert r.ok
        assert r.filtre == FiltrePerimetre("Acme", NiveauAgregation.ORGANISATION_GLOBAL)

    def test_sans_selection_par_filiere(self):
        r = self.resolveur.resoudre_scope()
        assert r.filtre.niveau == NiveauAgregation.PAR_FILIERE

    def test_filiere_seule_par_filiale(self):
        r = self.resolveur.resoudre_scope("Industrie")
        assert r.filtre == FiltrePerimetre("Groupe", NiveauAgregation.PAR_FILIALE, filiere="Industrie")

    def test_filiere_et_filiale_par_site(self):
        r = self.resolveur.resoudre_scope("Industrie", "F1")
        assert r.filtre == FiltrePerimetre(
            "Groupe", NiveauAgregation.PAR_SITE, filiere="Industrie", filiale="F1"
        )

    def test_filiale_sans_filiere(self):
        r = self.resolveur.resoudre_scope(None, "F1")
        assert not r.ok
        assert r.erreur == TypeErreur.SELECTION_INVALIDE
        assert r.filtre is None
        with pytest.raises(SelectionInvalide):
            r.verifier()

    def test_filiale_hors_filiere(self):
        r = self.resolveur.resoudre_scope("Services", "F1")
        assert r.erreur == TypeErreur.SELECTION_INVALIDE

    def test_filiere_inconnue(self):
        assert self.resolveur.resoudre_scope("Agriculture").erreur == TypeErreur.INTROUVABLE

    def test_filiale_inconnue(self):
        assert self.resolveur.resoudre_scope("Industrie", "F9").erreur == TypeErreur.INTROUVABLE


class TestPerimetreLecteur:

    def setup_method(self):
        self.resolveur = ResolveurHierarchie(structure_complexe())

    def test_selection_par_defaut_du_perimetre(self):
        lecteur = Acteur("l@g.fr", Role.INVITE, "Groupe", filiere="Industrie")
        r = self.resolveur.resoudre_scope(perimetre=lecteur)
        assert r.filtre.niveau == NiveauAgregation.PAR_FILIALE
        assert r.filtre.filiere == "Industrie"

    def test_filiale_du_perimetre_complete_la_filiere(self):
        lecteur = Acteur("l@g.fr", Role.INVITE, "Groupe", filiale="F3")
        r = self.resolveur.resoudre_scope(perimetre=lecteur)
        assert r.filtre == FiltrePerimetre(
            "Groupe", NiveauAgregation.PAR_SITE, filiere="Services", filiale="F3"
        )

    def test_selection_hors_perimetre(self):
        lecteur = Acteur("l@g.fr", Role.INVITE, "Groupe", filiere="Industrie")
        r = self.resolveur.resoudre_scope("Services", perimetre=lecteur)
        assert r.erreur == TypeErreur.NON_AUTORISE

    def test_autre_organisation(self):
        lecteur = Acteur("l@autre.fr", Role.INVITE, "Autre")
        assert self.resolveur.resoudre_scope(perimetre=lecteur).erreur == TypeErreur.NON_AUTORISE


class TestVerifierFiltre:

    def test_filtre_coherent(self):
        ResolveurHierarchie(structure_complexe()).verifier_filtre(
            FiltrePerimetre("Groupe", NiveauAgregation.PAR_SITE, filiere="Industrie", filiale="F1")
        )

    @pytest.mark.parametrize("filtre", [
        FiltrePerimetre("Autre", NiveauAgregation.ORGANISATION_GLOBAL),
        FiltrePerimetre("Groupe", NiveauAgregation.PAR_FILIALE, filiere="Inconnue"),
        FiltrePerimetre("Groupe", NiveauAgregation.PAR_SITE, filiere="Industrie"),
        FiltrePerimetre("Groupe", NiveauAgregation.PAR_SITE, filiere="Services", filiale="F1"),
    ])
    def test_filtre_incoherent(self, filtre):
        with pytest.raises(ScopeConfigurationError):
            ResolveurHierarchie(structure_complexe()).verifier_filtre(filtre)

    def test_niveau_impossible_pour_organisation_simple(self):
        with pytest.raises(ScopeConfigurationError):
            ResolveurHierarchie(structure_simple()).verifier_filtre(
                FiltrePerimetre("Acme", NiveauAgregation.PAR_FILIERE)
            )

    def test_site_sans_filiale_signale(self, caplog):
        structure = structure_complexe()
        structure.sites.append(Site("S9", "Groupe", filiere="Industrie"))
        with caplog.at_level(logging.WARNING, logger="pilotage_energie.hierarchie"):
            ResolveurHierarchie(structure).verifier_filtre(FiltrePerimetre("Groupe", NiveauAgregation.PAR_FILIERE))
        assert "S9" in caplog.text

    def test_structure_coherente_sans_avertissement(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pilotage_energie.hierarchie"):
            ResolveurHierarchie(structure_complexe()).verifier_filtre(
                FiltrePerimetre("Groupe", NiveauAgregation.PAR_FILIERE)
            )
        assert caplog.records == []


class TestAffectation:

    def setup_method(self):
        self.resolveur = ResolveurHierarchie(structure_complexe())

    def test_site_complete_par_la_structure(self):
        v = ValeurIndicateur(organisation="Groupe", site="S1")
        filtre = FiltrePerimetre("Groupe", NiveauAgregation.PAR_FILIERE)
        assert self.resolveur.affecter(v, filtre) == "Industrie"

    def test_valeur_de_filiale(self):
        v = ValeurIndicateur(organisation="Groupe", filiere="Industrie", filiale="F1")
        filtre = FiltrePerimetre("Groupe", NiveauAgregation.PAR_FILIALE, filiere="Industrie")
        assert self.resolveur.affecter(v, filtre) == "F1"

    def test_hors_perimetre(self):
        v = ValeurIndicateur(organisation="Groupe", filiere="Services", filiale="F3", site="S4")
        filtre = FiltrePerimetre("Groupe", NiveauAgregation.PAR_SITE, filiere="Industrie", filiale="F1")
        assert self.resolveur.affecter(v, filtre) is None

    def test_valeur_de_filiale_absente_par_site(self):
        v = ValeurIndicateur(organisation="Groupe", filiere="Industrie", filiale="F1")
        filtre = FiltrePerimetre("Groupe", NiveauAgregation.PAR_SITE, filiere="Industrie", filiale="F1")
        assert self.resolveur.affecter(v, filtre) is None
