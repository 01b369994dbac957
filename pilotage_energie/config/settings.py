"""Configuration globale de l'application."""

import os
from pathlib import Path
from dataclasses import dataclass, field


@dataclass
class BaseDonneesConfig:
    """Configuration du stockage des valeurs."""
    backend: str = field(default_factory=lambda: os.environ.get("PILOTAGE_BACKEND", "sqlite"))
    db_path: Path = field(default=None)
    supabase_url: str = field(default_factory=lambda: os.environ.get("SUPABASE_URL", ""))
    supabase_key: str = field(default_factory=lambda: os.environ.get("SUPABASE_KEY", ""))
    supabase_service_key: str = field(
        default_factory=lambda: os.environ.get("SUPABASE_SERVICE_KEY", "")
    )
    timeout_secondes: float = 5.0


@dataclass
class WorkflowConfig:
    """Configuration du circuit de validation."""
    refuser_periode_cloturee: bool = True
    journaliser_transitions: bool = True


@dataclass
class ConsolidationConfig:
    """Configuration du moteur de consolidation."""
    decimales: int = 2
    inclure_annee_precedente: bool = True


@dataclass
class AppConfig:
    """Configuration principale de l'application."""
    base_dir: Path = field(default_factory=lambda: Path(os.environ.get(
        "PILOTAGE_DATA_DIR", Path(__file__).parent.parent.parent
    )))
    data_dir: Path = field(default=None)
    audit_log_path: Path = field(default=None)

    base_donnees: BaseDonneesConfig = field(default_factory=BaseDonneesConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    consolidation: ConsolidationConfig = field(default_factory=ConsolidationConfig)

    def __post_init__(self):
        self.base_dir = Path(self.base_dir)
        if self.data_dir is None:
            self.data_dir = self.base_dir / "data"
        if self.audit_log_path is None:
            self.audit_log_path = self.data_dir / "audit.log"
        if self.base_donnees.db_path is None:
            env_path = os.environ.get("PILOTAGE_DB_PATH")
            self.base_donnees.db_path = (
                Path(env_path) if env_path else self.data_dir / "pilotage.db"
            )

        # Creer les repertoires si necessaire
        self.data_dir.mkdir(parents=True, exist_ok=True)
