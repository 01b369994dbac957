"""Fixtures partagees : base SQLite temporaire et jeux de donnees."""

import sys
from datetime import datetime, timedelta, timezone
from itertools import count
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from pilotage_energie.config.constants import Role, StatutPeriode, StatutValeur, TypePeriode
from pilotage_energie.database.sqlite_store import SQLiteValueStore
from pilotage_energie.models.entites import (
    Acteur, Filiale, Filiere, Indicateur, Processus, Site, ValeurIndicateur,
)
from pilotage_energie.referentiel.periodes import RegistrePeriodes

DEBUT = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return SQLiteValueStore(tmp_path / "pilotage.db")


@pytest.fixture
def org_simple(store):
    """Acme : organisation simple, un site Plant1, indicateur E1 du processus P1."""
    store.ajouter_site(Site("Plant1", "Acme"))
    store.enregistrer_processus(Processus("P1", "Energie", indicateurs=["E1"]))
    store.enregistrer_indicateur(
        Indicateur("E1", "Consommation electrique", unite="kWh", processus_code="P1")
    )
    store.enregistrer_selection("Acme", ["Consommation electrique"])
    return store.get_structure("Acme")


@pytest.fixture
def org_complexe(store):
    """Groupe : 2 filieres, 3 filiales, 4 sites ; E1 sans mode, E2 en somme."""
    org = "Groupe"
    store.ajouter_filiere(Filiere("Industrie", org))
    store.ajouter_filiere(Filiere("Services", org))
    store.ajouter_filiale(Filiale("F1", org, filiere="Industrie"))
    store.ajouter_filiale(Filiale("F2", org, filiere="Industrie"))
    store.ajouter_filiale(Filiale("F3", org, filiere="Services"))
    store.ajouter_site(Site("S1", org, filiere="Industrie", filiale="F1"))
    store.ajouter_site(Site("S2", org, filiere="Industrie", filiale="F1"))
    store.ajouter_site(Site("S3", org, filiere="Industrie", filiale="F2"))
    store.ajouter_site(Site("S4", org, filiere="Services", filiale="F3"))
    store.enregistrer_processus(Processus("P1", "Energie", indicateurs=["E1", "E2"]))
    store.enregistrer_processus(Processus("P2", "Achats"))
    store.enregistrer_indicateur(Indicateur("E1", "Intensite energetique", unite="kWh/t", processus_code="P1"))
    store.enregistrer_indicateur(
        Indicateur("E2", "Consommation totale", unite="kWh", formule="Somme", processus_code="P1")
    )
    store.enregistrer_indicateur(Indicateur("A1", "Achats verts", unite="%", processus_code="P2"))
    store.enregistrer_selection(org, ["Intensite energetique", "Consommation totale"])
    return store.get_structure(org)


@pytest.fixture
def periode(store):
    """Retourne (en la creant si besoin) la periode d'une cle donnee."""
    registre = RegistrePeriodes(store)

    def _periode(org, annee=2024, type_periode=TypePeriode.MOIS, numero=None, statut=None):
        existante = registre.trouver_periode(org, annee, type_periode, numero)
        if existante is not None and statut is None:
            return existante
        return registre.enregistrer_periode(
            org, annee, type_periode, numero, statut=statut or StatutPeriode.OUVERTE
        )
    return _periode


@pytest.fixture
def valeur(store, periode):
    """Insere une valeur ; les dates de creation sont strictement croissantes."""
    horloge = count()

    def _valeur(
        org, code, v, *, annee=2024, type_periode=TypePeriode.MOIS, numero=None,
        statut=StatutValeur.VALIDEE, filiere=None, filiale=None, site=None,
        processus="P1", cree_le=None,
    ):
        p = periode(org, annee, type_periode, numero)
        cree = cree_le or DEBUT + timedelta(minutes=next(horloge))
        val = ValeurIndicateur(
            indicateur_code=code, processus_code=processus, organisation=org,
            filiere=filiere, filiale=filiale, site=site, periode_id=p.id,
            valeur=v, statut=statut, cree_le=cree, maj_le=cree,
        )
        store.inserer_valeur(val)
        return val
    return _valeur


@pytest.fixture
def habiliter(store):
    """Enregistre les processus de l'acteur dans user_processus et le retourne."""
    def _habiliter(acteur):
        for code in sorted(acteur.processus):
            store.assigner_processus(acteur.email, code)
        return acteur
    return _habiliter


@pytest.fixture
def contributeur(org_simple, habiliter):
    return habiliter(Acteur("contrib@acme.fr", Role.CONTRIBUTEUR, "Acme", site="Plant1", processus={"P1"}))


@pytest.fixture
def validateur(org_simple, habiliter):
    return habiliter(Acteur("valid@acme.fr", Role.VALIDATEUR, "Acme", processus={"P1"}))
