"""Tests des statistiques de suivi et de la synthese tableau de bord."""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from pilotage_energie.config.constants import ClassePerformance, NiveauAgregation, Role, StatutValeur
from pilotage_energie.models.entites import Acteur, Indicateur, LigneConsolidee
from pilotage_energie.reporting.statistiques import (
    StatistiquesSaisie, StatistiquesValidation, statistiques_contributeur, statistiques_validateur,
)
from pilotage_energie.reporting.synthese import synthetiser
from pilotage_energie.workflow.machine_etats import MachineEtats
from pilotage_energie.workflow.saisie import ServiceSaisie


def ligne(code, valeur=None, performance=None, nom=""):
    return LigneConsolidee(
        organisation="Acme", annee=2024, code=code,
        niveau=NiveauAgregation.ORGANISATION_GLOBAL, noeud="Acme",
        indicateur=Indicateur(code, nom), valeur=valeur, performance_pourcent=performance,
    )


class TestStatistiquesSaisie:

    def test_repartition(self, store, org_simple, valeur, contributeur):
        valeur("Acme", "E1", 1, numero=1, site="Plant1", statut=StatutValeur.BROUILLON)
        valeur("Acme", "E1", 2, numero=2, site="Plant1", statut=StatutValeur.SOUMISE)
        valeur("Acme", "E1", 3, numero=3, site="Plant1", statut=StatutValeur.VALIDEE)
        valeur("Acme", "E1", 4, numero=4, site="Plant1", statut=StatutValeur.VALIDEE)
        valeur("Acme", "E1", 5, numero=5, site="Plant1", statut=StatutValeur.REJETEE)
        valeur("Acme", "E1", 6, numero=5, site="Plant1", statut=StatutValeur.VALIDEE)

        stats = statistiques_contributeur(ServiceSaisie(store), contributeur)
        assert stats.to_dict() == {
            "total": 6, "draft": 1, "submitted": 1, "validated": 3, "rejected": 1, "performance": 50,
        }

    def test_sans_saisie(self, store, org_simple, contributeur):
        assert statistiques_contributeur(ServiceSaisie(store), contributeur) == StatistiquesSaisie()
        assert StatistiquesSaisie().taux_validation == 0

    def test_arrondi_du_taux(self):
        assert StatistiquesSaisie(total=3, validees=2).taux_validation == 67


class TestStatistiquesValidation:

    def test_mois_revu(self, store, org_simple, valeur, validateur):
        valeur("Acme", "E1", 1, numero=4, site="Plant1", statut=StatutValeur.VALIDEE)
        valeur("Acme", "E1", 2, numero=4, site="Plant1", statut=StatutValeur.VALIDEE)
        valeur("Acme", "E1", 3, numero=4, site="Plant1", statut=StatutValeur.REJETEE)
        valeur("Acme", "E1", 4, numero=4, site="Plant1", statut=StatutValeur.SOUMISE)
        valeur("Acme", "E1", 5, numero=5, site="Plant1", statut=StatutValeur.VALIDEE)

        stats = statistiques_validateur(MachineEtats(store), validateur, 2024, 4)
        assert (stats.validees, stats.rejetees, stats.total) == (2, 1, 3)
        assert stats.to_dict()["performance"] == 67

    def test_mois_sans_periode(self, store, org_simple, validateur):
        assert statistiques_validateur(MachineEtats(store), validateur, 2024, 11) == StatistiquesValidation()

    def test_contributeur_sans_file(self, store, org_simple, valeur, contributeur):
        valeur("Acme", "E1", 1, numero=4, site="Plant1")
        assert statistiques_validateur(MachineEtats(store), contributeur, 2024, 4).total == 0

    def test_validateur_sans_processus(self, store, org_simple, valeur):
        valeur("Acme", "E1", 1, numero=4, site="Plant1")
        sans_processus = Acteur("v@acme.fr", Role.VALIDATEUR, "Acme")
        assert statistiques_validateur(MachineEtats(store), sans_processus, 2024, 4).total == 0


class TestSynthese:

    def test_synthese(self):
        synthese = synthetiser([
            ligne("E1", 120, 95.0, "Electricite"),
            ligne("E2", 80, 60.0),
            ligne("E3", 10, None),
            ligne("E4"),
        ])
        assert synthese.nb_indicateurs == 4
        assert synthese.nb_avec_valeur == 3
        assert synthese.performance_moyenne == 77.5
        assert synthese.meilleur_indicateur == "Electricite"
        assert synthese.repartition[ClassePerformance.EXCELLENTE] == 1
        assert synthese.repartition[ClassePerformance.MOYENNE] == 1
        assert synthese.repartition[ClassePerformance.FAIBLE] == 0

    def test_egalite_premier_indicateur(self):
        synthese = synthetiser([ligne("E1", 1, 80.0), ligne("E2", 1, 80.0, "Gaz")])
        assert synthese.meilleur_indicateur == "E1"

    def test_sans_performance(self):
        data = synthetiser([ligne("E1", 5)]).to_dict()
        assert data["averagePerformance"] == 0.0
        assert data["topPerformingIndicator"] is None
        assert data["repartition"] == {"excellent": 0, "good": 0, "fair": 0, "poor": 0}

    def test_vide(self):
        assert synthetiser([]).to_dict()["totalIndicators"] == 0
