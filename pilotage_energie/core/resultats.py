"""Resultats explicites des operations du noyau.

Le circuit de validation et le resolveur de hierarchie ne levent pas
d'exception pour un refus metier : ils retournent un resultat portant
``ok``, le type d'erreur et un message. ``verifier()`` convertit un refus
en exception pour les appelants qui preferent ce style.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pilotage_energie.core.exceptions import EXCEPTIONS_PAR_TYPE, TypeErreur
from pilotage_energie.models.entites import FiltrePerimetre, ValeurIndicateur


@dataclass
class Resultat:
    ok: bool = True
    erreur: Optional[TypeErreur] = None
    message: str = ""

    def verifier(self):
        """Leve l'exception correspondant au refus, sinon retourne le resultat."""
        if not self.ok:
            raise EXCEPTIONS_PAR_TYPE[self.erreur](self.message)
        return self


@dataclass
class ResultatTransition(Resultat):
    valeur: Optional[ValeurIndicateur] = None

    @classmethod
    def succes(cls, valeur: ValeurIndicateur) -> ResultatTransition:
        return cls(ok=True, valeur=valeur)

    @classmethod
    def echec(
        cls, erreur: TypeErreur, message: str, valeur: Optional[ValeurIndicateur] = None,
    ) -> ResultatTransition:
        return cls(ok=False, erreur=erreur, message=message, valeur=valeur)


@dataclass
class ResultatScope(Resultat):
    filtre: Optional[FiltrePerimetre] = None

    @classmethod
    def succes(cls, filtre: FiltrePerimetre) -> ResultatScope:
        return cls(ok=True, filtre=filtre)

    @classmethod
    def echec(cls, erreur: TypeErreur, message: str) -> ResultatScope:
        return cls(ok=False, erreur=erreur, message=message)


# Une saisie retourne la valeur creee, comme une transition
ResultatSaisie = ResultatTransition
