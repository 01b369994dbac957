"""Adaptateur de stockage SQLite."""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from pilotage_energie.config.constants import (
    StatutPeriode, StatutValeur, TypePeriode,
)
from pilotage_energie.database.db_manager import Database
from pilotage_energie.database.mapping import (
    COLONNES_PERIODE, champs_vers_colonnes, filiale_depuis_ligne, filiere_depuis_ligne,
    indicateur_depuis_ligne, indicateur_vers_ligne, noms_selection, objectif_depuis_ligne,
    periode_depuis_ligne, periode_vers_ligne, processus_depuis_ligne, site_depuis_ligne,
    valeur_depuis_ligne, valeur_vers_ligne,
)
from pilotage_energie.database.value_store import ValueStore, noms_rattachables
from pilotage_energie.models.entites import (
    Filiale, Filiere, FiltrePerimetre, Indicateur, ObjectifIndicateur, PeriodeCollecte,
    Processus, Site, StructureOrganisation, ValeurIndicateur,
)
from pilotage_energie.utils.date_utils import maintenant

logger = logging.getLogger("pilotage_energie.database")

# Colonnes de la periode jointe, prefixees pour ne pas masquer celles de la valeur
_SELECT_PERIODE_JOINTE = ", ".join(f"p.{col} AS p_{col}" for col in COLONNES_PERIODE)


def _periode_jointe(ligne: dict) -> Optional[PeriodeCollecte]:
    if ligne.get("p_id") is None:
        return None
    return periode_depuis_ligne({col: ligne[f"p_{col}"] for col in COLONNES_PERIODE})


def _placeholders(n: int) -> str:
    return ", ".join("?" * n)


class SQLiteValueStore(ValueStore):
    """Stockage des valeurs et referentiels dans une base SQLite."""

    def __init__(self, db: Database | Path | str):
        self.db = db if isinstance(db, Database) else Database(db)

    # ============================
    # STRUCTURE
    # ============================

    def get_structure(self, organisation: str) -> StructureOrganisation:
        params = (organisation,)
        filieres = self.db.execute(
            "SELECT * FROM filieres WHERE organization_name = ? ORDER BY name", params
        )
        filiales = self.db.execute(
            "SELECT * FROM filiales WHERE organization_name = ? ORDER BY name", params
        )
        sites = self.db.execute(
            "SELECT * FROM sites WHERE organization_name = ? ORDER BY name", params
        )
        return StructureOrganisation(
            organisation=organisation,
            filieres=[filiere_depuis_ligne(dict(r)) for r in filieres],
            filiales=[filiale_depuis_ligne(dict(r)) for r in filiales],
            sites=[site_depuis_ligne(dict(r)) for r in sites],
        )

    def ajouter_filiere(self, filiere: Filiere) -> None:
        self.db.execute(
            "INSERT OR REPLACE INTO filieres (name, organization_name, location) VALUES (?, ?, ?)",
            (filiere.nom, filiere.organisation, filiere.localisation),
        )

    def ajouter_filiale(self, filiale: Filiale) -> None:
        self.db.execute(
            """INSERT OR REPLACE INTO filiales (name, organization_name, filiere_name, location)
               VALUES (?, ?, ?, ?)""",
            (filiale.nom, filiale.organisation, filiale.filiere, filiale.localisation),
        )

    def ajouter_site(self, site: Site) -> None:
        self.db.execute(
            """INSERT OR REPLACE INTO sites (name, organization_name, filiere_name, filiale_name)
               VALUES (?, ?, ?, ?)""",
            (site.nom, site.organisation, site.filiere, site.filiale),
        )

    def get_processus_assignes(self, email: str) -> set[str]:
        rows = self.db.execute(
            "SELECT processus_code FROM user_processus WHERE email = ?", (email,)
        )
        return {r["processus_code"] for r in rows}

    def assigner_processus(self, email: str, processus_code: str) -> None:
        self.db.execute(
            "INSERT OR IGNORE INTO user_processus (email, processus_code) VALUES (?, ?)",
            (email, processus_code),
        )

    # ============================
    # CATALOGUE
    # ============================

    def enregistrer_processus(self, processus: Processus) -> None:
        self.db.execute(
            """INSERT OR REPLACE INTO processus (code, name, description, indicateurs)
               VALUES (?, ?, ?, ?)""",
            (processus.code, processus.nom, processus.description,
             json.dumps(processus.indicateurs)),
        )

    def get_processus(self, code: str) -> Optional[Processus]:
        rows = self.db.execute("SELECT * FROM processus WHERE code = ?", (code,))
        return processus_depuis_ligne(dict(rows[0])) if rows else None

    def enregistrer_indicateur(self, indicateur: Indicateur) -> None:
        ligne = indicateur_vers_ligne(indicateur)
        colonnes = ", ".join(ligne)
        self.db.execute(
            f"INSERT OR REPLACE INTO indicators ({colonnes}) VALUES ({_placeholders(len(ligne))})",
            tuple(ligne.values()),
        )

    def lister_indicateurs(self, codes: Optional[Iterable[str]] = None) -> list[Indicateur]:
        if codes is None:
            rows = self.db.execute("SELECT * FROM indicators ORDER BY code")
        else:
            codes = list(codes)
            if not codes:
                return []
            rows = self.db.execute(
                f"SELECT * FROM indicators WHERE code IN ({_placeholders(len(codes))}) ORDER BY code",
                tuple(codes),
            )
        return [indicateur_depuis_ligne(dict(r)) for r in rows]

    def enregistrer_selection(self, organisation: str, noms: list[str]) -> None:
        """Ajoute une selection ; seule la plus recente fait foi."""
        self.db.execute(
            """INSERT INTO organization_selections (organization_name, indicator_names, created_at)
               VALUES (?, ?, ?)""",
            (organisation, json.dumps(noms), maintenant().isoformat()),
        )

    def get_selection_organisation(self, organisation: str) -> list[str]:
        rows = self.db.execute(
            """SELECT indicator_names FROM organization_selections
               WHERE organization_name = ? ORDER BY created_at DESC, id DESC LIMIT 1""",
            (organisation,),
        )
        return noms_selection(dict(rows[0]) if rows else None)

    # ============================
    # PERIODES
    # ============================

    def get_periode(self, periode_id: str) -> Optional[PeriodeCollecte]:
        rows = self.db.execute("SELECT * FROM collection_periods WHERE id = ?", (periode_id,))
        return periode_depuis_ligne(dict(rows[0])) if rows else None

    def trouver_periode(
        self, organisation: str, annee: int, type_periode: TypePeriode, numero: Optional[int],
    ) -> Optional[PeriodeCollecte]:
        rows = self.db.execute(
            """SELECT * FROM collection_periods
               WHERE organization_name = ? AND year = ? AND period_type = ? AND period_number IS ?""",
            (organisation, annee, TypePeriode(type_periode).value, numero),
        )
        return periode_depuis_ligne(dict(rows[0])) if rows else None

    def lister_periodes(self, organisation: str, annee: Optional[int] = None) -> list[PeriodeCollecte]:
        sql = "SELECT * FROM collection_periods WHERE organization_name = ?"
        params: list = [organisation]
        if annee is not None:
            sql += " AND year = ?"
            params.append(annee)
        sql += " ORDER BY year DESC, period_type, period_number DESC"
        return [periode_depuis_ligne(dict(r)) for r in self.db.execute(sql, tuple(params))]

    def enregistrer_periode(self, periode: PeriodeCollecte) -> PeriodeCollecte:
        existante = self.trouver_periode(
            periode.organisation, periode.annee, periode.type_periode, periode.numero
        )
        if existante is not None:
            periode.id = existante.id
            self.db.execute(
                """UPDATE collection_periods SET start_date = ?, end_date = ?, status = ?
                   WHERE id = ?""",
                (
                    periode.date_debut.isoformat() if periode.date_debut else None,
                    periode.date_fin.isoformat() if periode.date_fin else None,
                    StatutPeriode(periode.statut).value, periode.id,
                ),
            )
        else:
            ligne = periode_vers_ligne(periode)
            self.db.execute(
                f"INSERT INTO collection_periods ({', '.join(ligne)}) "
                f"VALUES ({_placeholders(len(ligne))})",
                tuple(ligne.values()),
            )
        return periode

    def maj_statut_periode(self, periode_id: str, statut: StatutPeriode) -> bool:
        n = self.db.execute_rowcount(
            "UPDATE collection_periods SET status = ? WHERE id = ?",
            (StatutPeriode(statut).value, periode_id),
        )
        return n == 1

    # ============================
    # VALEURS
    # ============================

    def _select_valeurs(self, where: str, params: tuple) -> list[ValeurIndicateur]:
        rows = self.db.execute(
            f"""SELECT v.*, {_SELECT_PERIODE_JOINTE}
                FROM indicator_values v
                LEFT JOIN collection_periods p ON p.id = v.period_id
                WHERE {where}
                ORDER BY v.indicator_code, v.created_at""",
            params,
        )
        resultat = []
        for r in rows:
            ligne = dict(r)
            resultat.append(valeur_depuis_ligne(ligne, _periode_jointe(ligne)))
        return resultat

    def get_valeur(self, valeur_id: str) -> Optional[ValeurIndicateur]:
        valeurs = self._select_valeurs("v.id = ?", (valeur_id,))
        return valeurs[0] if valeurs else None

    def inserer_valeur(self, valeur: ValeurIndicateur) -> ValeurIndicateur:
        ligne = valeur_vers_ligne(valeur)
        self.db.execute(
            f"INSERT INTO indicator_values ({', '.join(ligne)}) "
            f"VALUES ({_placeholders(len(ligne))})",
            tuple(ligne.values()),
        )
        return valeur

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
        clauses = ["v.organization_name = ?"]
        params: list = [organisation]
        if periode_id is not None:
            clauses.append("v.period_id = ?")
            params.append(periode_id)
        if indicateur_code is not None:
            clauses.append("v.indicator_code = ?")
            params.append(indicateur_code)
        if processus_codes is not None:
            codes = list(processus_codes)
            if not codes:
                return []
            clauses.append(f"v.processus_code IN ({_placeholders(len(codes))})")
            params.extend(codes)
        if site is not None:
            clauses.append("v.site_name = ?")
            params.append(site)
        if statuts is not None:
            valeurs_statut = [StatutValeur(s).value for s in statuts]
            if not valeurs_statut:
                return []
            clauses.append(f"v.status IN ({_placeholders(len(valeurs_statut))})")
            params.extend(valeurs_statut)
        return self._select_valeurs(" AND ".join(clauses), tuple(params))

    def get_valeurs_validees(
        self, codes: Iterable[str], filtre: FiltrePerimetre, annee: int,
    ) -> list[ValeurIndicateur]:
        codes = list(codes)
        if not codes:
            return []
        clauses = [
            "v.organization_name = ?",
            "v.status = ?",
            "p.year = ?",
            f"v.indicator_code IN ({_placeholders(len(codes))})",
        ]
        params: list = [filtre.organisation, StatutValeur.VALIDEE.value, annee, *codes]
        noms = noms_rattachables(self.get_structure(filtre.organisation), filtre)
        alternatives = []
        for colonne, valeurs in noms.items():
            if valeurs:
                alternatives.append(f"v.{colonne} IN ({_placeholders(len(valeurs))})")
                params.extend(valeurs)
        if alternatives:
            clauses.append("(" + " OR ".join(alternatives) + ")")
        return self._select_valeurs(" AND ".join(clauses), tuple(params))

    def transitionner(
        self, valeur_id: str, de: StatutValeur, vers: StatutValeur, champs: dict,
    ) -> bool:
        colonnes = champs_vers_colonnes(champs)
        colonnes["status"] = StatutValeur(vers).value
        colonnes["updated_at"] = maintenant().isoformat()
        set_clause = ", ".join(f"{col} = ?" for col in colonnes)
        n = self.db.execute_rowcount(
            f"UPDATE indicator_values SET {set_clause} WHERE id = ? AND status = ?",
            (*colonnes.values(), valeur_id, StatutValeur(de).value),
        )
        if n != 1:
            logger.debug("CAS refuse pour %s (%s -> %s)", valeur_id, de.value, vers.value)
        return n == 1

    # ============================
    # CIBLES
    # ============================

    def enregistrer_objectif(self, objectif: ObjectifIndicateur) -> None:
        self.db.execute(
            """INSERT INTO indicator_targets
               (organization_name, indicator_code, year, value, filiere_name, filiale_name, site_name)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                objectif.organisation, objectif.indicateur_code, objectif.annee,
                objectif.valeur, objectif.filiere, objectif.filiale, objectif.site,
            ),
        )

    def get_objectifs(self, organisation: str, annee: int) -> list[ObjectifIndicateur]:
        rows = self.db.execute(
            """SELECT * FROM indicator_targets WHERE organization_name = ? AND year = ?
               ORDER BY id""",
            (organisation, annee),
        )
        return [objectif_depuis_ligne(dict(r)) for r in rows]
