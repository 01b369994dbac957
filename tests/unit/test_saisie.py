"""Tests de la saisie des valeurs par les contributeurs."""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from pilotage_energie.config.constants import Role, StatutPeriode, StatutValeur
from pilotage_energie.core.exceptions import Doublon, TypeErreur
from pilotage_energie.models.entites import Acteur
from pilotage_energie.security.audit_logger import AuditLogger
from pilotage_energie.workflow.machine_etats import MachineEtats
from pilotage_energie.workflow.saisie import ServiceSaisie


class TestSaisieValeur:

    def test_saisie_soumise(self, store, org_simple, periode, contributeur):
        p = periode("Acme", numero=6)
        r = ServiceSaisie(store).saisir_valeur(contributeur, p.id, "E1", "1 234,5")

        assert r.ok
        v = store.get_valeur(r.valeur.id)
        assert v.valeur == 1234.5
        assert v.statut == StatutValeur.SOUMISE
        assert v.unite == "kWh"
        assert v.processus_code == "P1"
        assert v.site == "Plant1"
        assert v.soumis_par == "contrib@acme.fr"

    def test_saisie_brouillon(self, store, org_simple, periode, contributeur):
        p = periode("Acme", numero=6)
        r = ServiceSaisie(store).saisir_valeur(contributeur, p.id, "E1", 10, soumettre=False)
        assert r.valeur.statut == StatutValeur.BROUILLON
        assert r.valeur.soumis_par is None

    def test_valeur_vide_acceptee(self, store, org_simple, periode, contributeur):
        p = periode("Acme", numero=6)
        r = ServiceSaisie(store).saisir_valeur(contributeur, p.id, "E1", "")
        assert r.ok
        assert r.valeur.valeur is None

    @pytest.mark.parametrize("saisie", ["abc", "12kWh", float("inf"), True])
    def test_valeur_invalide(self, store, org_simple, periode, contributeur, saisie):
        p = periode("Acme", numero=6)
        r = ServiceSaisie(store).saisir_valeur(contributeur, p.id, "E1", saisie)
        assert r.erreur == TypeErreur.VALEUR_INVALIDE

    def test_site_complete_la_chaine(self, store, org_complexe, periode, habiliter):
        acteur = habiliter(Acteur("c@g.fr", Role.CONTRIBUTEUR, "Groupe", site="S3", processus={"P1"}))
        p = periode("Groupe", numero=1)
        r = ServiceSaisie(store).saisir_valeur(acteur, p.id, "E2", 7)
        assert (r.valeur.filiere, r.valeur.filiale, r.valeur.site) == ("Industrie", "F2", "S3")

    def test_site_inconnu(self, store, org_simple, periode, habiliter):
        acteur = habiliter(Acteur("c@acme.fr", Role.CONTRIBUTEUR, "Acme", site="Plant9", processus={"P1"}))
        p = periode("Acme", numero=1)
        assert ServiceSaisie(store).saisir_valeur(acteur, p.id, "E1", 1).erreur == TypeErreur.INTROUVABLE


class TestRefusSaisie:

    def test_role_non_contributeur(self, store, org_simple, periode, validateur):
        p = periode("Acme", numero=1)
        r = ServiceSaisie(store).saisir_valeur(validateur, p.id, "E1", 1)
        assert r.erreur == TypeErreur.NON_AUTORISE

    def test_periode_inconnue(self, store, org_simple, contributeur):
        assert ServiceSaisie(store).saisir_valeur(contributeur, "absente", "E1", 1).erreur == TypeErreur.INTROUVABLE

    def test_periode_autre_organisation(self, store, org_simple, org_complexe, periode, contributeur):
        p = periode("Groupe", numero=1)
        assert ServiceSaisie(store).saisir_valeur(contributeur, p.id, "E1", 1).erreur == TypeErreur.NON_AUTORISE

    def test_periode_cloturee(self, store, org_simple, periode, contributeur):
        p = periode("Acme", numero=1, statut=StatutPeriode.CLOTUREE)
        r = ServiceSaisie(store).saisir_valeur(contributeur, p.id, "E1", 1)
        assert r.erreur == TypeErreur.PERIODE_CLOTUREE

    def test_indicateur_hors_selection(self, store, org_complexe, periode, habiliter):
        acteur = habiliter(Acteur("c@g.fr", Role.CONTRIBUTEUR, "Groupe", site="S1", processus={"P1", "P2"}))
        p = periode("Groupe", numero=1)
        assert ServiceSaisie(store).saisir_valeur(acteur, p.id, "A1", 1).erreur == TypeErreur.INTROUVABLE

    def test_processus_non_affecte(self, store, org_simple, periode):
        acteur = Acteur("c@acme.fr", Role.CONTRIBUTEUR, "Acme", site="Plant1", processus={"P2"})
        p = periode("Acme", numero=1)
        assert ServiceSaisie(store).saisir_valeur(acteur, p.id, "E1", 1).erreur == TypeErreur.NON_AUTORISE

    def test_processus_lus_dans_le_stockage(self, store, org_simple, periode):
        store.assigner_processus("c@acme.fr", "P1")
        acteur = Acteur("c@acme.fr", Role.CONTRIBUTEUR, "Acme", site="Plant1")
        p = periode("Acme", numero=1)
        assert ServiceSaisie(store).saisir_valeur(acteur, p.id, "E1", 1).ok

    def test_processus_declare_sans_affectation_refuse(self, store, org_simple, periode):
        acteur = Acteur("c@acme.fr", Role.CONTRIBUTEUR, "Acme", site="Plant1", processus={"P1"})
        p = periode("Acme", numero=1)
        assert ServiceSaisie(store).saisir_valeur(acteur, p.id, "E1", 1).erreur == TypeErreur.NON_AUTORISE

    def test_processus_declares_restreignent_les_affectations(self, store, org_complexe, periode):
        store.assigner_processus("c@g.fr", "P1")
        store.assigner_processus("c@g.fr", "P2")
        acteur = Acteur("c@g.fr", Role.CONTRIBUTEUR, "Groupe", site="S1", processus={"P2"})
        p = periode("Groupe", numero=1)
        assert ServiceSaisie(store).saisir_valeur(acteur, p.id, "E2", 1).erreur == TypeErreur.NON_AUTORISE


class TestDoublons:

    def test_doublon_refuse(self, store, org_simple, periode, contributeur):
        p = periode("Acme", numero=2)
        service = ServiceSaisie(store)
        assert service.saisir_valeur(contributeur, p.id, "E1", 1).ok
        r = service.saisir_valeur(contributeur, p.id, "E1", 2)
        assert r.erreur == TypeErreur.DOUBLON
        with pytest.raises(Doublon):
            r.verifier()

    def test_valeur_rejetee_non_bloquante(self, store, org_simple, periode, contributeur, validateur):
        p = periode("Acme", numero=2)
        service = ServiceSaisie(store)
        premiere = service.saisir_valeur(contributeur, p.id, "E1", 1).valeur
        MachineEtats(store).rejeter(premiere.id, validateur, "Valeur aberrante").verifier()
        assert service.saisir_valeur(contributeur, p.id, "E1", 2).ok

    def test_autre_site_non_bloquant(self, store, org_complexe, periode, habiliter):
        p = periode("Groupe", numero=2)
        service = ServiceSaisie(store)
        s1 = habiliter(Acteur("a@g.fr", Role.CONTRIBUTEUR, "Groupe", site="S1", processus={"P1"}))
        s2 = habiliter(Acteur("b@g.fr", Role.CONTRIBUTEUR, "Groupe", site="S2", processus={"P1"}))
        assert service.saisir_valeur(s1, p.id, "E2", 1).ok
        assert service.saisir_valeur(s2, p.id, "E2", 1).ok


class TestListerSaisies:

    def test_saisies_du_noeud(self, store, org_complexe, periode, valeur, habiliter):
        valeur("Groupe", "E2", 1, numero=1, filiere="Industrie", filiale="F1", site="S1")
        valeur("Groupe", "E2", 2, numero=1, filiere="Industrie", filiale="F1", site="S2")
        valeur("Groupe", "E2", 3, numero=1, filiere="Industrie", filiale="F1")
        acteur = habiliter(Acteur("a@g.fr", Role.CONTRIBUTEUR, "Groupe", site="S1", processus={"P1"}))
        filiale = habiliter(Acteur("f@g.fr", Role.CONTRIBUTEUR, "Groupe", filiere="Industrie", filiale="F1",
                                   processus={"P1"}))
        service = ServiceSaisie(store)
        assert [v.valeur for v in service.lister_saisies(acteur)] == [1]
        assert [v.valeur for v in service.lister_saisies(filiale)] == [3]

    def test_journal_audit(self, store, org_simple, periode, contributeur, tmp_path):
        audit = AuditLogger(tmp_path / "audit.log")
        p = periode("Acme", numero=3)
        service = ServiceSaisie(store, audit)
        service.saisir_valeur(contributeur, p.id, "E1", 5)
        service.saisir_valeur(contributeur, p.id, "E1", 6)

        entrees = audit.lire_journal()
        assert [e["resultat"] for e in entrees] == ["succes", "echec"]
        assert entrees[0]["details"] == {"indicateur": "E1", "statut": "submitted"}
        assert entrees[1]["details"] == {"erreur": "doublon"}
