"""
Constantes metier du pilotage des indicateurs energetiques.

Statuts du cycle de validation, types de periodes, niveaux de la hierarchie
organisationnelle et seuils de classification des performances.
"""

from enum import Enum


class StatutValeur(str, Enum):
    """Cycle de vie d'une valeur d'indicateur."""
    BROUILLON = "draft"
    SOUMISE = "submitted"
    VALIDEE = "validated"
    REJETEE = "rejected"


class StatutPeriode(str, Enum):
    OUVERTE = "open"
    CLOTUREE = "closed"


class TypePeriode(str, Enum):
    MOIS = "month"
    TRIMESTRE = "quarter"
    ANNEE = "year"


class Role(str, Enum):
    """Roles applicatifs des profils utilisateurs."""
    ADMIN = "admin"
    ADMIN_CLIENT = "admin_client"
    CONTRIBUTEUR = "contributeur"
    VALIDATEUR = "validateur"
    INVITE = "guest"


class Niveau(str, Enum):
    """Niveaux de la hierarchie, du plus haut au plus fin."""
    ORGANISATION = "organisation"
    FILIERE = "filiere"
    FILIALE = "filiale"
    SITE = "site"


class NiveauAgregation(str, Enum):
    """Perimetre de consolidation choisi par le resolveur de hierarchie."""
    ORGANISATION_GLOBAL = "organisation_global"
    PAR_FILIERE = "par_filiere"
    PAR_FILIALE = "par_filiale"
    PAR_SITE = "par_site"


class ModeAgregation(str, Enum):
    """Mode de remontee declare dans les metadonnees d'un indicateur."""
    SOMME = "somme"
    MOYENNE = "moyenne"
    MAX = "max"
    MIN = "min"
    AUCUN = "aucun"


class ClassePerformance(str, Enum):
    EXCELLENTE = "excellent"
    BONNE = "good"
    MOYENNE = "fair"
    FAIBLE = "poor"


# Transitions autorisees : les etats validated/rejected sont terminaux
TRANSITIONS_VALIDES: dict[StatutValeur, list[StatutValeur]] = {
    StatutValeur.BROUILLON: [StatutValeur.SOUMISE],
    StatutValeur.SOUMISE: [StatutValeur.VALIDEE, StatutValeur.REJETEE],
    StatutValeur.VALIDEE: [],
    StatutValeur.REJETEE: [],
}

# Bornes des numeros de periode (None pour l'annee)
NUMEROS_PERIODE = {
    TypePeriode.MOIS: range(1, 13),
    TypePeriode.TRIMESTRE: range(1, 5),
}

# Seuils de classification des performances (en %)
SEUIL_EXCELLENTE = 90.0
SEUIL_BONNE = 70.0
SEUIL_MOYENNE = 50.0

# Libelles des colonnes mensuelles des tables consolidees
MOIS = [
    "janvier", "fevrier", "mars", "avril", "mai", "juin",
    "juillet", "aout", "septembre", "octobre", "novembre", "decembre",
]

# Mots-cles declarant un mode de remontee : champ egal au mot-cle, ou forme
# fonction "mot-cle(...)" (ex: "SUM(E1)")
MOTS_CLES_AGREGATION = {
    ModeAgregation.SOMME: ("somme", "sum", "total", "cumul"),
    ModeAgregation.MOYENNE: ("moyenne", "avg", "average", "mean"),
    ModeAgregation.MAX: ("max",),
    ModeAgregation.MIN: ("min",),
}

ANNEE_MIN = 1900
ANNEE_MAX = 9999
