"""Utilitaires de dates : horodatage et bornes des periodes de collecte."""

from datetime import date, datetime, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

from pilotage_energie.config.constants import TypePeriode


def maintenant() -> datetime:
    """Horodatage UTC courant."""
    return datetime.now(timezone.utc)


def bornes_periode(annee: int, type_periode: TypePeriode, numero: Optional[int]) -> tuple[date, date]:
    """Calcule la date de debut et de fin (incluse) d'une periode."""
    if type_periode == TypePeriode.MOIS:
        debut = date(annee, numero, 1)
        duree = relativedelta(months=1)
    elif type_periode == TypePeriode.TRIMESTRE:
        debut = date(annee, 3 * (numero - 1) + 1, 1)
        duree = relativedelta(months=3)
    else:
        debut = date(annee, 1, 1)
        duree = relativedelta(years=1)
    return debut, debut + duree - relativedelta(days=1)
