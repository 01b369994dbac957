"""Journal d'audit append-only du circuit de saisie et de validation.

Une ligne JSON par evenement : saisie d'une valeur, transition de statut ou
refus (avec le type d'erreur).
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from pilotage_energie.utils.date_utils import maintenant

logger = logging.getLogger("pilotage_energie.audit")


class AuditLogger:
    """Trace les operations sur les valeurs d'indicateurs."""

    def __init__(self, log_path: Path):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._verrou = threading.Lock()

    def log(
        self,
        operation: str,
        acteur: str,
        *,
        valeur_id: Optional[str] = None,
        details: Optional[dict] = None,
        resultat: str = "succes",
    ) -> None:
        evenement = {
            "timestamp": maintenant().isoformat(),
            "acteur": acteur,
            "operation": operation,
            "resultat": resultat,
        }
        if valeur_id:
            evenement["valeur_id"] = valeur_id
        if details:
            evenement["details"] = details

        ligne = json.dumps(evenement, ensure_ascii=False, default=str)
        try:
            with self._verrou, open(self.log_path, "a", encoding="utf-8") as f:
                f.write(ligne + "\n")
        except OSError as e:
            logger.error("Ecriture du journal d'audit impossible (%s) : %s", self.log_path, e)

    def log_saisie(self, acteur: str, valeur_id: str, indicateur_code: str, statut: str) -> None:
        self.log(
            "saisie_valeur", acteur, valeur_id=valeur_id,
            details={"indicateur": indicateur_code, "statut": statut},
        )

    def log_transition(self, acteur: str, valeur_id: str, de: str, vers: str) -> None:
        self.log("transition", acteur, valeur_id=valeur_id, details={"de": de, "vers": vers})

    def log_refus(self, acteur: str, operation: str, erreur: str, valeur_id: Optional[str] = None) -> None:
        self.log(operation, acteur, valeur_id=valeur_id, details={"erreur": erreur}, resultat="echec")

    def lire_journal(
        self, valeur_id: Optional[str] = None, operation: Optional[str] = None,
    ) -> list[dict]:
        """Evenements du journal, dans l'ordre d'ecriture, filtres si demande."""
        if not self.log_path.exists():
            return []
        with open(self.log_path, encoding="utf-8") as f:
            evenements = [json.loads(l) for l in f if l.strip()]
        return [
            e for e in evenements
            if (valeur_id is None or e.get("valeur_id") == valeur_id)
            and (operation is None or e["operation"] == operation)
        ]
