"""Saisie des valeurs d'indicateurs par les contributeurs."""

import logging
from typing import Optional

from pilotage_energie.config.constants import Role, StatutValeur
from pilotage_energie.core.exceptions import TypeErreur
from pilotage_energie.core.resultats import ResultatSaisie
from pilotage_energie.database.value_store import ValueStore
from pilotage_energie.models.entites import Acteur, ValeurIndicateur
from pilotage_energie.referentiel.catalogue import CatalogueIndicateurs
from pilotage_energie.security.audit_logger import AuditLogger
from pilotage_energie.utils.date_utils import maintenant
from pilotage_energie.utils.number_utils import parser_valeur
from pilotage_energie.workflow.machine_etats import est_proprietaire, processus_effectifs

logger = logging.getLogger("pilotage_energie.saisie")

# Une valeur rejetee n'empeche pas une nouvelle saisie
STATUTS_BLOQUANTS = [StatutValeur.BROUILLON, StatutValeur.SOUMISE, StatutValeur.VALIDEE]


class ServiceSaisie:
    """Cree les valeurs saisies par un contributeur sur son perimetre."""

    def __init__(self, store: ValueStore, audit: Optional[AuditLogger] = None):
        self.store = store
        self.audit = audit
        self.catalogue = CatalogueIndicateurs(store)

    def saisir_valeur(
        self,
        acteur: Acteur,
        periode_id: str,
        indicateur_code: str,
        valeur,
        commentaire: Optional[str] = None,
        soumettre: bool = True,
    ) -> ResultatSaisie:
        """Enregistre une valeur pour le noeud de rattachement du contributeur.

        La valeur est creee soumise (ou en brouillon si ``soumettre`` est faux),
        rattachee a la chaine filiere/filiale/site complete du contributeur.
        Une valeur non rejetee existant deja pour la meme periode, le meme
        indicateur et le meme noeud est un doublon.
        """
        if acteur.role != Role.CONTRIBUTEUR:
            return self._refus(acteur, TypeErreur.NON_AUTORISE, f"{acteur.email} n'est pas contributeur")

        periode = self.store.get_periode(periode_id)
        if periode is None:
            return self._refus(acteur, TypeErreur.INTROUVABLE, f"Periode inconnue : {periode_id}")
        if periode.organisation != acteur.organisation:
            return self._refus(
                acteur, TypeErreur.NON_AUTORISE,
                f"La periode {periode_id} n'appartient pas a {acteur.organisation}",
            )
        if periode.est_cloturee:
            return self._refus(acteur, TypeErreur.PERIODE_CLOTUREE, f"La periode {periode_id} est cloturee")

        indicateur = self.catalogue.get_indicateur_organisation(acteur.organisation, indicateur_code)
        if indicateur is None:
            return self._refus(
                acteur, TypeErreur.INTROUVABLE,
                f"Indicateur {indicateur_code} absent de la selection de {acteur.organisation}",
            )
        processus = processus_effectifs(self.store, acteur)
        if indicateur.processus_code not in processus:
            return self._refus(
                acteur, TypeErreur.NON_AUTORISE,
                f"Processus {indicateur.processus_code} non affecte a {acteur.email}",
            )

        try:
            nombre = parser_valeur(valeur)
        except ValueError as e:
            return self._refus(acteur, TypeErreur.VALEUR_INVALIDE, str(e))

        structure = self.store.get_structure(acteur.organisation)
        if acteur.site and structure.get_site(acteur.site) is None:
            return self._refus(acteur, TypeErreur.INTROUVABLE, f"Site inconnu : {acteur.site}")
        filiere, filiale, site = structure.rattachement(acteur.filiere, acteur.filiale, acteur.site)

        existantes = self.store.lister_valeurs(
            acteur.organisation,
            periode_id=periode_id,
            indicateur_code=indicateur_code,
            statuts=STATUTS_BLOQUANTS,
        )
        if any((v.filiere, v.filiale, v.site) == (filiere, filiale, site) for v in existantes):
            return self._refus(
                acteur, TypeErreur.DOUBLON,
                f"Une valeur existe deja pour {indicateur_code} sur cette periode et ce perimetre",
            )

        horodatage = maintenant()
        nouvelle = ValeurIndicateur(
            indicateur_code=indicateur_code,
            processus_code=indicateur.processus_code,
            organisation=acteur.organisation,
            filiere=filiere,
            filiale=filiale,
            site=site,
            periode_id=periode_id,
            valeur=nombre,
            unite=indicateur.unite,
            statut=StatutValeur.SOUMISE if soumettre else StatutValeur.BROUILLON,
            commentaire=commentaire,
            soumis_par=acteur.email if soumettre else None,
            soumis_le=horodatage if soumettre else None,
            cree_le=horodatage,
            maj_le=horodatage,
            periode=periode,
        )
        self.store.inserer_valeur(nouvelle)
        logger.info(
            "Valeur %s saisie par %s pour %s (%s)",
            nouvelle.id, acteur.email, indicateur_code, nouvelle.statut.value,
        )
        if self.audit:
            self.audit.log_saisie(acteur.email, nouvelle.id, indicateur_code, nouvelle.statut.value)
        return ResultatSaisie.succes(nouvelle)

    def lister_saisies(self, acteur: Acteur, periode_id: Optional[str] = None) -> list[ValeurIndicateur]:
        """Valeurs saisies sur le noeud du contributeur."""
        processus = processus_effectifs(self.store, acteur)
        valeurs = self.store.lister_valeurs(
            acteur.organisation,
            periode_id=periode_id,
            processus_codes=sorted(processus),
            site=acteur.site,
        )
        return [v for v in valeurs if est_proprietaire(acteur, v)]

    def _refus(self, acteur: Acteur, erreur: TypeErreur, message: str) -> ResultatSaisie:
        logger.warning("Saisie refusee (%s) : %s", erreur.value, message)
        if self.audit:
            self.audit.log_refus(acteur.email, "saisie_valeur", erreur.value)
        return ResultatSaisie.echec(erreur, message)
