"""Tests des calculs de variation, performance et agregation."""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from pilotage_energie.config.constants import ClassePerformance, ModeAgregation
from pilotage_energie.consolidation.calculs import (
    agreger, calculer_performance, calculer_variation, libelle_variation,
)
from pilotage_energie.models.entites import classer_performance


class TestVariation:

    def test_variation_annee_precedente(self):
        assert calculer_variation(100, 80) == 25.00

    def test_baisse(self):
        assert calculer_variation(60, 80) == -25.0

    def test_arrondi_deux_decimales(self):
        assert calculer_variation(100, 30) == 233.33

    @pytest.mark.parametrize("courante,precedente", [
        (100, 0), (100, None), (None, 80), (None, None), (0, 0),
    ])
    def test_variation_nulle(self, courante, precedente):
        assert calculer_variation(courante, precedente) is None

    def test_courante_zero(self):
        assert calculer_variation(0, 50) == -100.0

    @pytest.mark.parametrize("courante,precedente,libelle", [
        (100, 80, "hausse"), (60, 80, "baisse"), (80, 80, "stable"), (None, 80, None), (80, None, None),
    ])
    def test_libelle(self, courante, precedente, libelle):
        assert libelle_variation(courante, precedente) == libelle


class TestPerformance:

    def test_performance(self):
        assert calculer_performance(90, 120) == 75.0

    @pytest.mark.parametrize("courante,cible", [(90, 0), (90, None), (None, 120)])
    def test_performance_nulle(self, courante, cible):
        assert calculer_performance(courante, cible) is None

    def test_jamais_infinie(self):
        assert calculer_performance(1e308, 1e-308) is None

    @pytest.mark.parametrize("performance,classe", [
        (120, ClassePerformance.EXCELLENTE),
        (90, ClassePerformance.EXCELLENTE),
        (89.99, ClassePerformance.BONNE),
        (70, ClassePerformance.BONNE),
        (69.5, ClassePerformance.MOYENNE),
        (50, ClassePerformance.MOYENNE),
        (49.9, ClassePerformance.FAIBLE),
        (0, ClassePerformance.FAIBLE),
        (None, None),
    ])
    def test_classification(self, performance, classe):
        assert classer_performance(performance) == classe


class TestAgregation:

    def test_somme(self):
        assert agreger([10, None, 5], ModeAgregation.SOMME) == 15

    def test_moyenne_ignore_les_nuls(self):
        assert agreger([10, None, 20], ModeAgregation.MOYENNE) == 15

    def test_extremes(self):
        assert agreger([3, 7, 5], ModeAgregation.MAX) == 7
        assert agreger([3, 7, 5], ModeAgregation.MIN) == 3

    def test_aucune_valeur(self):
        assert agreger([None, None], ModeAgregation.SOMME) is None

    def test_mode_sans_calcul(self):
        with pytest.raises(ValueError):
            agreger([1], ModeAgregation.AUCUN)
