"""Conversion entre lignes de stockage (colonnes SQL) et modeles.

Les lignes brutes (SQLite ou Supabase) sont validees par pydantic :
statuts convertis en enums, horodatages ISO en datetime, valeurs en float.
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from pilotage_energie.core.exceptions import StoreError
from pilotage_energie.models.entites import (
    Filiale, Filiere, Indicateur, ObjectifIndicateur, PeriodeCollecte,
    Processus, Site, ValeurIndicateur,
)

COLONNES_VALEUR = {
    "id": "id",
    "period_id": "periode_id",
    "organization_name": "organisation",
    "filiere_name": "filiere",
    "filiale_name": "filiale",
    "site_name": "site",
    "processus_code": "processus_code",
    "indicator_code": "indicateur_code",
    "value": "valeur",
    "unit": "unite",
    "status": "statut",
    "comment": "commentaire",
    "submitted_by": "soumis_par",
    "submitted_at": "soumis_le",
    "validated_by": "valide_par",
    "validated_at": "valide_le",
    "created_at": "cree_le",
    "updated_at": "maj_le",
}

COLONNES_PERIODE = {
    "id": "id",
    "organization_name": "organisation",
    "year": "annee",
    "period_type": "type_periode",
    "period_number": "numero",
    "start_date": "date_debut",
    "end_date": "date_fin",
    "status": "statut",
}

COLONNES_INDICATEUR = {
    "code": "code",
    "name": "nom",
    "description": "description",
    "unit": "unite",
    "type": "type",
    "formule": "formule",
    "processus_code": "processus_code",
    "frequence": "frequence",
    "axe_energetique": "axe_energetique",
    "enjeux": "enjeux",
    "normes": "normes",
    "critere": "critere",
}

COLONNES_OBJECTIF = {
    "organization_name": "organisation",
    "indicator_code": "indicateur_code",
    "year": "annee",
    "value": "valeur",
    "filiere_name": "filiere",
    "filiale_name": "filiale",
    "site_name": "site",
}

_valeur_adapter = TypeAdapter(ValeurIndicateur)
_periode_adapter = TypeAdapter(PeriodeCollecte)
_indicateur_adapter = TypeAdapter(Indicateur)
_objectif_adapter = TypeAdapter(ObjectifIndicateur)


def _renommer(ligne: dict, colonnes: dict[str, str]) -> dict:
    return {champ: ligne[col] for col, champ in colonnes.items() if col in ligne}


def _valider(adapter: TypeAdapter, data: dict, nom: str):
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise StoreError(f"Ligne {nom} invalide : {e}") from e


def _serialiser(valeur: Any) -> Any:
    if isinstance(valeur, Enum):
        return valeur.value
    if isinstance(valeur, (datetime, date)):
        return valeur.isoformat()
    return valeur


def periode_depuis_ligne(ligne: dict) -> PeriodeCollecte:
    return _valider(_periode_adapter, _renommer(ligne, COLONNES_PERIODE), "collection_periods")


def periode_vers_ligne(periode: PeriodeCollecte) -> dict:
    return {col: _serialiser(getattr(periode, champ)) for col, champ in COLONNES_PERIODE.items()}


def valeur_depuis_ligne(ligne: dict, periode: Optional[PeriodeCollecte] = None) -> ValeurIndicateur:
    data = _renommer(ligne, COLONNES_VALEUR)
    valeur = _valider(_valeur_adapter, data, "indicator_values")
    valeur.periode = periode
    return valeur


def valeur_vers_ligne(valeur: ValeurIndicateur) -> dict:
    return {col: _serialiser(getattr(valeur, champ)) for col, champ in COLONNES_VALEUR.items()}


def champs_vers_colonnes(champs: dict) -> dict:
    """Traduit des champs de modele (soumis_par, ...) en colonnes serialisees."""
    inverse = {champ: col for col, champ in COLONNES_VALEUR.items()}
    return {inverse[k]: _serialiser(v) for k, v in champs.items()}


def indicateur_depuis_ligne(ligne: dict) -> Indicateur:
    return _valider(_indicateur_adapter, _renommer(ligne, COLONNES_INDICATEUR), "indicators")


def indicateur_vers_ligne(indicateur: Indicateur) -> dict:
    return {col: getattr(indicateur, champ) for col, champ in COLONNES_INDICATEUR.items()}


def objectif_depuis_ligne(ligne: dict) -> ObjectifIndicateur:
    return _valider(_objectif_adapter, _renommer(ligne, COLONNES_OBJECTIF), "indicator_targets")


def processus_depuis_ligne(ligne: dict) -> Processus:
    indicateurs = ligne.get("indicateurs") or []
    if isinstance(indicateurs, str):
        indicateurs = json.loads(indicateurs)
    return Processus(
        code=ligne["code"],
        nom=ligne.get("name") or "",
        description=ligne.get("description"),
        indicateurs=list(indicateurs),
    )


def noms_selection(ligne: Optional[dict]) -> list[str]:
    if not ligne:
        return []
    noms = ligne.get("indicator_names") or []
    if isinstance(noms, str):
        noms = json.loads(noms)
    return list(noms)


def filiere_depuis_ligne(ligne: dict) -> Filiere:
    return Filiere(
        nom=ligne["name"], organisation=ligne["organization_name"],
        localisation=ligne.get("location"),
    )


def filiale_depuis_ligne(ligne: dict) -> Filiale:
    return Filiale(
        nom=ligne["name"], organisation=ligne["organization_name"],
        filiere=ligne.get("filiere_name"), localisation=ligne.get("location"),
    )


def site_depuis_ligne(ligne: dict) -> Site:
    return Site(
        nom=ligne["name"], organisation=ligne["organization_name"],
        filiere=ligne.get("filiere_name"), filiale=ligne.get("filiale_name"),
    )
