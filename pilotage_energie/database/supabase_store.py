"""Adaptateur de stockage Supabase.

Configuration via variables d'environnement (ou ``BaseDonneesConfig``) :
  SUPABASE_URL=https://xxx.supabase.co
  SUPABASE_KEY=eyJhbG...
  SUPABASE_SERVICE_KEY=eyJhbG... (operations systeme, bypass RLS)

Tables : celles du schema SQLite (indicator_values, collection_periods,
indicators, processus, organization_selections, filieres, filiales, sites,
user_processus, indicator_targets).
"""

import logging
import os
from functools import wraps
from typing import Iterable, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from pilotage_energie.config.constants import (
    StatutPeriode, StatutValeur, TypePeriode,
)
from pilotage_energie.core.exceptions import ConfigError, StoreError
from pilotage_energie.database.mapping import (
    champs_vers_colonnes, filiale_depuis_ligne, filiere_depuis_ligne, indicateur_depuis_ligne,
    noms_selection, objectif_depuis_ligne, periode_depuis_ligne, periode_vers_ligne,
    processus_depuis_ligne, site_depuis_ligne, valeur_depuis_ligne, valeur_vers_ligne,
)
from pilotage_energie.database.value_store import ValueStore, noms_rattachables
from pilotage_energie.models.entites import (
    FiltrePerimetre, Indicateur, ObjectifIndicateur, PeriodeCollecte, Processus,
    StructureOrganisation, ValeurIndicateur,
)
from pilotage_energie.utils.date_utils import maintenant

logger = logging.getLogger("pilotage_energie.database.supabase")

# Periode jointe ; !inner pour pouvoir filtrer sur l'annee
_SELECT_VALEUR = "*, periode:collection_periods!inner(*)"


def _erreurs_api(methode):
    """Convertit les erreurs PostgREST en StoreError."""
    @wraps(methode)
    def wrapper(*args, **kwargs):
        try:
            return methode(*args, **kwargs)
        except APIError as e:
            logger.error("Erreur Supabase dans %s : %s", methode.__name__, e)
            raise StoreError(f"Supabase : {e}") from e
    return wrapper


def _valeur_jointe(ligne: dict) -> ValeurIndicateur:
    periode = ligne.pop("periode", None)
    return valeur_depuis_ligne(ligne, periode_depuis_ligne(periode) if periode else None)


def _liste_postgrest(valeurs: list[str]) -> str:
    """Liste ``("a","b")`` pour un filtre ``in`` dans ``or_`` (noms entre guillemets)."""
    echappes = (v.replace("\\", "\\\\").replace('"', '\\"') for v in valeurs)
    return "(" + ",".join(f'"{v}"' for v in echappes) + ")"


class SupabaseValueStore(ValueStore):
    """Stockage adosse aux tables Supabase de l'application."""

    def __init__(self, url: str = None, key: str = None, client: Client = None):
        if client is not None:
            self.client = client
            return
        url = url or os.environ.get("SUPABASE_URL", "")
        key = key or os.environ.get("SUPABASE_SERVICE_KEY") or os.environ.get("SUPABASE_KEY", "")
        if not url or not key:
            raise ConfigError("SUPABASE_URL et SUPABASE_KEY sont requis")
        self.client = create_client(url, key)

    # ============================
    # STRUCTURE
    # ============================

    @_erreurs_api
    def get_structure(self, organisation: str) -> StructureOrganisation:
        def lire(table):
            return (
                self.client.table(table).select("*")
                .eq("organization_name", organisation).order("name").execute()
            ).data or []

        return StructureOrganisation(
            organisation=organisation,
            filieres=[filiere_depuis_ligne(r) for r in lire("filieres")],
            filiales=[filiale_depuis_ligne(r) for r in lire("filiales")],
            sites=[site_depuis_ligne(r) for r in lire("sites")],
        )

    @_erreurs_api
    def get_processus_assignes(self, email: str) -> set[str]:
        result = (
            self.client.table("user_processus").select("processus_code")
            .eq("email", email).execute()
        )
        return {r["processus_code"] for r in result.data or []}

    # ============================
    # CATALOGUE
    # ============================

    @_erreurs_api
    def lister_indicateurs(self, codes: Optional[Iterable[str]] = None) -> list[Indicateur]:
        query = self.client.table("indicators").select("*")
        if codes is not None:
            codes = list(codes)
            if not codes:
                return []
            query = query.in_("code", codes)
        result = query.order("code").execute()
        return [indicateur_depuis_ligne(r) for r in result.data or []]

    @_erreurs_api
    def get_processus(self, code: str) -> Optional[Processus]:
        result = self.client.table("processus").select("*").eq("code", code).execute()
        return processus_depuis_ligne(result.data[0]) if result.data else None

    @_erreurs_api
    def get_selection_organisation(self, organisation: str) -> list[str]:
        result = (
            self.client.table("organization_selections")
            .select("indicator_names")
            .eq("organization_name", organisation)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return noms_selection(result.data[0] if result.data else None)

    # ============================
    # PERIODES
    # ============================

    @_erreurs_api
    def get_periode(self, periode_id: str) -> Optional[PeriodeCollecte]:
        result = self.client.table("collection_periods").select("*").eq("id", periode_id).execute()
        return periode_depuis_ligne(result.data[0]) if result.data else None

    @_erreurs_api
    def trouver_periode(
        self, organisation: str, annee: int, type_periode: TypePeriode, numero: Optional[int],
    ) -> Optional[PeriodeCollecte]:
        query = (
            self.client.table("collection_periods").select("*")
            .eq("organization_name", organisation)
            .eq("year", annee)
            .eq("period_type", TypePeriode(type_periode).value)
        )
        query = query.is_("period_number", "null") if numero is None else query.eq("period_number", numero)
        result = query.execute()
        return periode_depuis_ligne(result.data[0]) if result.data else None

    @_erreurs_api
    def lister_periodes(self, organisation: str, annee: Optional[int] = None) -> list[PeriodeCollecte]:
        query = self.client.table("collection_periods").select("*").eq("organization_name", organisation)
        if annee is not None:
            query = query.eq("year", annee)
        result = query.order("year", desc=True).order("period_number", desc=True).execute()
        return [periode_depuis_ligne(r) for r in result.data or []]

    @_erreurs_api
    def enregistrer_periode(self, periode: PeriodeCollecte) -> PeriodeCollecte:
        existante = self.trouver_periode(
            periode.organisation, periode.annee, periode.type_periode, periode.numero
        )
        ligne = periode_vers_ligne(periode)
        if existante is not None:
            periode.id = existante.id
            ligne.pop("id")
            self.client.table("collection_periods").update(ligne).eq("id", periode.id).execute()
        else:
            self.client.table("collection_periods").insert(ligne).execute()
        return periode

    @_erreurs_api
    def maj_statut_periode(self, periode_id: str, statut: StatutPeriode) -> bool:
        result = (
            self.client.table("collection_periods")
            .update({"status": StatutPeriode(statut).value})
            .eq("id", periode_id)
            .execute()
        )
        return bool(result.data)

    # ============================
    # VALEURS
    # ============================

    @_erreurs_api
    def get_valeur(self, valeur_id: str) -> Optional[ValeurIndicateur]:
        result = self.client.table("indicator_values").select(_SELECT_VALEUR).eq("id", valeur_id).execute()
        return _valeur_jointe(result.data[0]) if result.data else None

    @_erreurs_api
    def inserer_valeur(self, valeur: ValeurIndicateur) -> ValeurIndicateur:
        self.client.table("indicator_values").insert(valeur_vers_ligne(valeur)).execute()
        return valeur

    @_erreurs_api
    def lister_valeurs(
        self,
        organisation: str,
        *,
        periode_id: Optional[str] = None,
        indicateur_code: Optional[str] = None,
        processus_codes: Optional[Iterable[str]] = None,
        site: Optional[str] = None,
        statuts: Optional[Iterable[StatutValeur]] = None,
    ) -> list[ValeurIndicateur]:
        query = (
            self.client.table("indicator_values").select(_SELECT_VALEUR)
            .eq("organization_name", organisation)
        )
        if periode_id is not None:
            query = query.eq("period_id", periode_id)
        if indicateur_code is not None:
            query = query.eq("indicator_code", indicateur_code)
        if processus_codes is not None:
            codes = list(processus_codes)
            if not codes:
                return []
            query = query.in_("processus_code", codes)
        if site is not None:
            query = query.eq("site_name", site)
        if statuts is not None:
            valeurs_statut = [StatutValeur(s).value for s in statuts]
            if not valeurs_statut:
                return []
            query = query.in_("status", valeurs_statut)
        result = query.order("indicator_code").order("created_at").execute()
        return [_valeur_jointe(r) for r in result.data or []]

    @_erreurs_api
    def get_valeurs_validees(
        self, codes: Iterable[str], filtre: FiltrePerimetre, annee: int,
    ) -> list[ValeurIndicateur]:
        codes = list(codes)
        if not codes:
            return []
        query = (
            self.client.table("indicator_values").select(_SELECT_VALEUR)
            .eq("organization_name", filtre.organisation)
            .eq("status", StatutValeur.VALIDEE.value)
            .eq("periode.year", annee)
            .in_("indicator_code", codes)
        )
        noms = noms_rattachables(self.get_structure(filtre.organisation), filtre)
        alternatives = [
            f"{colonne}.in.{_liste_postgrest(valeurs)}" for colonne, valeurs in noms.items() if valeurs
        ]
        if alternatives:
            query = query.or_(",".join(alternatives))
        result = query.order("indicator_code").order("created_at").execute()
        return [_valeur_jointe(r) for r in result.data or []]

    @_erreurs_api
    def transitionner(
        self, valeur_id: str, de: StatutValeur, vers: StatutValeur, champs: dict,
    ) -> bool:
        colonnes = champs_vers_colonnes(champs)
        colonnes["status"] = StatutValeur(vers).value
        colonnes["updated_at"] = maintenant().isoformat()
        # Aucune ligne retournee si le statut a change entre-temps
        result = (
            self.client.table("indicator_values")
            .update(colonnes)
            .eq("id", valeur_id)
            .eq("status", StatutValeur(de).value)
            .execute()
        )
        return len(result.data or []) == 1

    # ============================
    # CIBLES
    # ============================

    @_erreurs_api
    def get_objectifs(self, organisation: str, annee: int) -> list[ObjectifIndicateur]:
        result = (
            self.client.table("indicator_targets").select("*")
            .eq("organization_name", organisation)
            .eq("year", annee)
            .execute()
        )
        return [objectif_depuis_ligne(r) for r in result.data or []]
