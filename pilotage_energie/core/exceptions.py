"""Exceptions personnalisees pour le pilotage des indicateurs."""

from enum import Enum


class TypeErreur(str, Enum):
    """Nature d'un refus metier (retourne, jamais leve, par le noyau)."""
    TRANSITION_INVALIDE = "transition_invalide"
    NON_AUTORISE = "non_autorise"
    COMMENTAIRE_MANQUANT = "commentaire_manquant"
    SELECTION_INVALIDE = "selection_invalide"
    INTROUVABLE = "introuvable"
    PERIODE_CLOTUREE = "periode_cloturee"
    DOUBLON = "doublon"
    VALEUR_INVALIDE = "valeur_invalide"


class PilotageError(Exception):
    """Exception de base."""


class ConfigError(PilotageError):
    """Erreur de configuration."""


class StoreError(PilotageError):
    """Erreur d'acces au stockage (infrastructure)."""


class ScopeConfigurationError(PilotageError):
    """Perimetre de consolidation incoherent avec la structure de l'organisation."""


class ErreurDomaine(PilotageError):
    """Refus metier converti en exception par ``verifier()``."""
    type_erreur: TypeErreur = None

    def __init__(self, message: str = ""):
        super().__init__(message or self.type_erreur.value)


class TransitionInvalide(ErreurDomaine):
    type_erreur = TypeErreur.TRANSITION_INVALIDE


class NonAutorise(ErreurDomaine):
    type_erreur = TypeErreur.NON_AUTORISE


class CommentaireManquant(ErreurDomaine):
    type_erreur = TypeErreur.COMMENTAIRE_MANQUANT


class SelectionInvalide(ErreurDomaine):
    type_erreur = TypeErreur.SELECTION_INVALIDE


class ElementIntrouvable(ErreurDomaine):
    type_erreur = TypeErreur.INTROUVABLE


class PeriodeCloturee(ErreurDomaine):
    type_erreur = TypeErreur.PERIODE_CLOTUREE


class Doublon(ErreurDomaine):
    type_erreur = TypeErreur.DOUBLON


class ValeurInvalide(ErreurDomaine):
    type_erreur = TypeErreur.VALEUR_INVALIDE


EXCEPTIONS_PAR_TYPE: dict[TypeErreur, type[ErreurDomaine]] = {
    cls.type_erreur: cls
    for cls in (
        TransitionInvalide, NonAutorise, CommentaireManquant, SelectionInvalide,
        ElementIntrouvable, PeriodeCloturee, Doublon, ValeurInvalide,
    )
}
