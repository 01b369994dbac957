"""Schema de la base de donnees SQLite du pilotage des indicateurs.

Gere :
- Structure des organisations (filieres, filiales, sites)
- Catalogue (processus, indicateurs, selections d'organisation)
- Periodes de collecte
- Valeurs d'indicateurs et affectations des validateurs
- Cibles annuelles

Les noms de tables et de colonnes sont ceux des tables Supabase,
ce qui permet de basculer d'un stockage a l'autre sans transformation.
"""

import sqlite3
from pathlib import Path
from contextlib import contextmanager

SCHEMA_SQL = """
-- Structure
CREATE TABLE IF NOT EXISTS filieres (
    name TEXT NOT NULL,
    organization_name TEXT NOT NULL,
    location TEXT,
    PRIMARY KEY (organization_name, name)
);

CREATE TABLE IF NOT EXISTS filiales (
    name TEXT NOT NULL,
    organization_name TEXT NOT NULL,
    filiere_name TEXT,
    location TEXT,
    PRIMARY KEY (organization_name, name)
);

CREATE TABLE IF NOT EXISTS sites (
    name TEXT NOT NULL,
    organization_name TEXT NOT NULL,
    filiere_name TEXT,
    filiale_name TEXT,
    PRIMARY KEY (organization_name, name)
);

-- Catalogue
CREATE TABLE IF NOT EXISTS processus (
    code TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    description TEXT,
    indicateurs TEXT DEFAULT '[]'
);

CREATE TABLE IF NOT EXISTS indicators (
    code TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    description TEXT,
    unit TEXT,
    type TEXT,
    formule TEXT,
    processus_code TEXT REFERENCES processus(code),
    frequence TEXT,
    axe_energetique TEXT,
    enjeux TEXT,
    normes TEXT,
    critere TEXT
);

CREATE TABLE IF NOT EXISTS organization_selections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    organization_name TEXT NOT NULL,
    indicator_names TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_processus (
    email TEXT NOT NULL,
    processus_code TEXT NOT NULL REFERENCES processus(code),
    PRIMARY KEY (email, processus_code)
);

-- Periodes de collecte
CREATE TABLE IF NOT EXISTS collection_periods (
    id TEXT PRIMARY KEY,
    organization_name TEXT NOT NULL,
    year INTEGER NOT NULL,
    period_type TEXT NOT NULL CHECK (period_type IN ('month', 'quarter', 'year')),
    period_number INTEGER,
    start_date TEXT,
    end_date TEXT,
    status TEXT NOT NULL DEFAULT 'open' CHECK (status IN ('open', 'closed'))
);

-- Valeurs saisies
CREATE TABLE IF NOT EXISTS indicator_values (
    id TEXT PRIMARY KEY,
    period_id TEXT NOT NULL REFERENCES collection_periods(id),
    organization_name TEXT NOT NULL,
    filiere_name TEXT,
    filiale_name TEXT,
    site_name TEXT,
    processus_code TEXT NOT NULL,
    indicator_code TEXT NOT NULL,
    value REAL,
    unit TEXT,
    status TEXT NOT NULL DEFAULT 'draft'
        CHECK (status IN ('draft', 'submitted', 'validated', 'rejected')),
    comment TEXT,
    submitted_by TEXT,
    submitted_at TEXT,
    validated_by TEXT,
    validated_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Cibles annuelles
CREATE TABLE IF NOT EXISTS indicator_targets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    organization_name TEXT NOT NULL,
    indicator_code TEXT NOT NULL,
    year INTEGER NOT NULL,
    value REAL,
    filiere_name TEXT,
    filiale_name TEXT,
    site_name TEXT
);

-- Unicite (organisation, annee, type, numero) ; numero NULL pour l'annee
CREATE UNIQUE INDEX IF NOT EXISTS idx_periodes_cle
    ON collection_periods(organization_name, year, period_type, COALESCE(period_number, 0));

-- Index pour performances
CREATE INDEX IF NOT EXISTS idx_valeurs_periode ON indicator_values(period_id);
CREATE INDEX IF NOT EXISTS idx_valeurs_org_statut ON indicator_values(organization_name, status);
CREATE INDEX IF NOT EXISTS idx_valeurs_indicateur ON indicator_values(indicator_code);
CREATE INDEX IF NOT EXISTS idx_periodes_org_annee ON collection_periods(organization_name, year);
CREATE INDEX IF NOT EXISTS idx_selections_org ON organization_selections(organization_name);
CREATE INDEX IF NOT EXISTS idx_cibles_org_annee ON indicator_targets(organization_name, year);
"""


class Database:
    """Gestionnaire de base de donnees SQLite."""

    def __init__(self, db_path: Path | str = "pilotage.db", timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA_SQL)

    @contextmanager
    def connection(self):
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchall()

    def execute_rowcount(self, sql: str, params: tuple = ()) -> int:
        """Execute une ecriture et retourne le nombre de lignes modifiees."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.rowcount
