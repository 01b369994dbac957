"""Catalogue des indicateurs filtre par la selection de chaque organisation."""

import logging
from typing import Optional

from pilotage_energie.database.value_store import ValueStore
from pilotage_energie.models.entites import Indicateur

logger = logging.getLogger("pilotage_energie.catalogue")


class CatalogueIndicateurs:
    """Vue du catalogue limitee aux indicateurs retenus par une organisation.

    La selection d'une organisation est la plus recente enregistree ; elle
    reference les indicateurs par nom (ou par code).
    """

    def __init__(self, store: ValueStore):
        self.store = store

    def lister_indicateurs_organisation(self, organisation: str) -> list[Indicateur]:
        """Indicateurs selectionnes par l'organisation, tries par code."""
        selection = set(self.store.get_selection_organisation(organisation))
        if not selection:
            logger.info("Aucune selection d'indicateurs pour %s", organisation)
            return []
        return [
            ind for ind in self.store.lister_indicateurs()
            if ind.nom in selection or ind.code in selection
        ]

    def codes_organisation(self, organisation: str) -> list[str]:
        return [ind.code for ind in self.lister_indicateurs_organisation(organisation)]

    def get_indicateur_organisation(self, organisation: str, code: str) -> Optional[Indicateur]:
        """Indicateur du catalogue s'il fait partie de la selection, sinon None."""
        return next(
            (ind for ind in self.lister_indicateurs_organisation(organisation) if ind.code == code),
            None,
        )

    def lister_par_processus(self, organisation: str, processus_code: str) -> list[Indicateur]:
        """Indicateurs selectionnes appartenant a un processus.

        Un indicateur appartient au processus s'il le declare comme
        proprietaire ou s'il figure dans la liste d'indicateurs du processus.
        """
        processus = self.store.get_processus(processus_code)
        codes_processus = set(processus.indicateurs) if processus else set()
        return [
            ind for ind in self.lister_indicateurs_organisation(organisation)
            if ind.processus_code == processus_code or ind.code in codes_processus
        ]
