"""Assemblage des services a partir de la configuration.

Coordonne le stockage des valeurs et les services du noyau :
1. Stockage (SQLite ou Supabase selon la configuration)
2. Referentiels (periodes, catalogue)
3. Circuit de validation et saisie
4. Consolidation
"""

import logging
from typing import Optional

from pilotage_energie.config.settings import AppConfig
from pilotage_energie.consolidation.moteur import MoteurConsolidation
from pilotage_energie.core.exceptions import ConfigError
from pilotage_energie.database.db_manager import Database
from pilotage_energie.database.sqlite_store import SQLiteValueStore
from pilotage_energie.database.value_store import ValueStore
from pilotage_energie.referentiel.catalogue import CatalogueIndicateurs
from pilotage_energie.referentiel.periodes import RegistrePeriodes
from pilotage_energie.security.audit_logger import AuditLogger
from pilotage_energie.workflow.machine_etats import MachineEtats
from pilotage_energie.workflow.saisie import ServiceSaisie

logger = logging.getLogger("pilotage_energie")


def creer_store(config: AppConfig) -> ValueStore:
    """Instancie l'adaptateur de stockage declare dans la configuration."""
    bd = config.base_donnees
    if bd.backend == "sqlite":
        return SQLiteValueStore(Database(bd.db_path, timeout=bd.timeout_secondes))
    if bd.backend == "supabase":
        # Dependance optionnelle (extra "supabase")
        from pilotage_energie.database.supabase_store import SupabaseValueStore
        return SupabaseValueStore(bd.supabase_url, bd.supabase_service_key or bd.supabase_key)
    raise ConfigError(f"Backend de stockage inconnu : {bd.backend}")


class Pilotage:
    """Point d'acces unique aux services du pilotage energetique."""

    def __init__(self, config: Optional[AppConfig] = None, store: Optional[ValueStore] = None):
        self.config = config or AppConfig()
        self.store = store or creer_store(self.config)
        self.audit = AuditLogger(self.config.audit_log_path)
        self.periodes = RegistrePeriodes(self.store)
        self.catalogue = CatalogueIndicateurs(self.store)
        self.machine = MachineEtats(self.store, self.audit, self.config.workflow)
        self.saisie = ServiceSaisie(self.store, self.audit)
        self.moteur = MoteurConsolidation(self.store, self.config.consolidation)
        logger.debug("Services initialises (backend %s)", self.config.base_donnees.backend)
