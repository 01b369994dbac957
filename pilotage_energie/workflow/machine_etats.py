"""Circuit de validation des valeurs d'indicateurs.

draft -> submitted -> validated | rejected. Les etats validated et rejected
sont terminaux : une correction passe par une nouvelle saisie.

Chaque transition est verifiee dans cet ordre : existence de la valeur,
transition autorisee, habilitation de l'acteur, commentaire de rejet,
periode ouverte, puis ecriture conditionnelle sur le statut lu.
"""

import logging
from typing import Iterable, Optional

from pilotage_energie.config.constants import Role, StatutValeur, TRANSITIONS_VALIDES
from pilotage_energie.config.settings import WorkflowConfig
from pilotage_energie.core.exceptions import TypeErreur
from pilotage_energie.core.resultats import ResultatTransition
from pilotage_energie.database.value_store import ValueStore
from pilotage_energie.models.entites import Acteur, ValeurIndicateur
from pilotage_energie.security.audit_logger import AuditLogger
from pilotage_energie.utils.date_utils import maintenant

logger = logging.getLogger("pilotage_energie.workflow")


def transition_autorisee(de: StatutValeur, vers: StatutValeur) -> bool:
    return StatutValeur(vers) in TRANSITIONS_VALIDES[StatutValeur(de)]


def est_proprietaire(acteur: Acteur, valeur: ValeurIndicateur) -> bool:
    """Le contributeur est rattache au noeud qui porte la valeur."""
    if acteur.organisation and acteur.organisation != valeur.organisation:
        return False
    # Le noeud le plus fin fait foi, les niveaux parents peuvent manquer au profil
    return (
        acteur.niveau == valeur.niveau_proprietaire
        and _identifiant_niveau(acteur.site, acteur.filiale, acteur.filiere)
        == _identifiant_niveau(valeur.site, valeur.filiale, valeur.filiere)
    )


def _identifiant_niveau(site, filiale, filiere) -> Optional[str]:
    return site or filiale or filiere


def est_eligible_validateur(acteur: Acteur, valeur: ValeurIndicateur, processus: Iterable[str]) -> bool:
    """Un validateur voit les valeurs de ses processus, limitees a son site s'il en a un."""
    if acteur.organisation and acteur.organisation != valeur.organisation:
        return False
    if valeur.processus_code not in set(processus):
        return False
    return acteur.site is None or acteur.site == valeur.site


def processus_effectifs(store: ValueStore, acteur: Acteur) -> set[str]:
    """Processus affectes a l'acteur dans le stockage.

    ``acteur.processus`` ne fait que restreindre ces affectations : un
    processus absent de ``user_processus`` n'est jamais accorde.
    """
    assignes = store.get_processus_assignes(acteur.email)
    if acteur.processus:
        return assignes & set(acteur.processus)
    return assignes


class MachineEtats:
    """Applique les transitions de statut des valeurs d'indicateurs."""

    def __init__(
        self,
        store: ValueStore,
        audit: Optional[AuditLogger] = None,
        config: Optional[WorkflowConfig] = None,
    ):
        self.store = store
        self.audit = audit
        self.config = config or WorkflowConfig()

    def processus_acteur(self, acteur: Acteur) -> set[str]:
        return processus_effectifs(self.store, acteur)

    def peut_agir(self, acteur: Acteur, valeur: ValeurIndicateur, vers: StatutValeur) -> bool:
        vers = StatutValeur(vers)
        if vers == StatutValeur.SOUMISE:
            return acteur.role == Role.CONTRIBUTEUR and est_proprietaire(acteur, valeur)
        if vers in (StatutValeur.VALIDEE, StatutValeur.REJETEE):
            return acteur.role == Role.VALIDATEUR and est_eligible_validateur(
                acteur, valeur, self.processus_acteur(acteur)
            )
        return False

    # ============================
    # TRANSITIONS
    # ============================

    def transitionner(
        self,
        valeur_id: str,
        vers: StatutValeur,
        acteur: Acteur,
        commentaire: Optional[str] = None,
    ) -> ResultatTransition:
        """Fait passer une valeur dans le statut demande.

        Args:
            valeur_id: Identifiant de la valeur.
            vers: Statut cible.
            acteur: Utilisateur a l'origine de la transition.
            commentaire: Motif, obligatoire pour un rejet.

        Returns:
            ResultatTransition portant la valeur mise a jour, ou le type de refus.
            Une erreur du stockage est propagee (StoreError).
        """
        vers = StatutValeur(vers)
        valeur = self.store.get_valeur(valeur_id)
        if valeur is None:
            return self._refus(acteur, valeur_id, TypeErreur.INTROUVABLE, f"Valeur inconnue : {valeur_id}")

        de = valeur.statut
        if not transition_autorisee(de, vers):
            return self._refus(
                acteur, valeur_id, TypeErreur.TRANSITION_INVALIDE,
                f"Transition {de.value} -> {vers.value} interdite", valeur,
            )
        if not self.peut_agir(acteur, valeur, vers):
            return self._refus(
                acteur, valeur_id, TypeErreur.NON_AUTORISE,
                f"{acteur.email} ({acteur.role.value}) ne peut pas passer la valeur en {vers.value}",
                valeur,
            )
        if vers == StatutValeur.REJETEE and not (commentaire and commentaire.strip()):
            return self._refus(
                acteur, valeur_id, TypeErreur.COMMENTAIRE_MANQUANT,
                "Un commentaire est obligatoire pour rejeter une valeur", valeur,
            )
        if (
            vers in (StatutValeur.VALIDEE, StatutValeur.REJETEE)
            and self.config.refuser_periode_cloturee
            and valeur.periode is not None
            and valeur.periode.est_cloturee
        ):
            return self._refus(
                acteur, valeur_id, TypeErreur.PERIODE_CLOTUREE,
                f"La periode {valeur.periode_id} est cloturee", valeur,
            )

        champs = self._champs_transition(vers, acteur, commentaire)
        if not self.store.transitionner(valeur_id, de, vers, champs):
            return self._refus(
                acteur, valeur_id, TypeErreur.TRANSITION_INVALIDE,
                f"Statut de {valeur_id} modifie entre-temps (attendu {de.value})", valeur,
            )

        for nom, v in champs.items():
            setattr(valeur, nom, v)
        valeur.statut = vers
        valeur.maj_le = champs.get("soumis_le") or champs.get("valide_le") or maintenant()

        logger.info("Valeur %s : %s -> %s par %s", valeur_id, de.value, vers.value, acteur.email)
        if self.audit and self.config.journaliser_transitions:
            self.audit.log_transition(acteur.email, valeur_id, de.value, vers.value)
        return ResultatTransition.succes(valeur)

    def soumettre(self, valeur_id: str, acteur: Acteur) -> ResultatTransition:
        return self.transitionner(valeur_id, StatutValeur.SOUMISE, acteur)

    def valider(self, valeur_id: str, acteur: Acteur, commentaire: Optional[str] = None) -> ResultatTransition:
        return self.transitionner(valeur_id, StatutValeur.VALIDEE, acteur, commentaire)

    def rejeter(self, valeur_id: str, acteur: Acteur, commentaire: str) -> ResultatTransition:
        return self.transitionner(valeur_id, StatutValeur.REJETEE, acteur, commentaire)

    @staticmethod
    def _champs_transition(vers: StatutValeur, acteur: Acteur, commentaire: Optional[str]) -> dict:
        horodatage = maintenant()
        if vers == StatutValeur.SOUMISE:
            champs = {"soumis_par": acteur.email, "soumis_le": horodatage}
        else:
            # Le validateur est trace pour une validation comme pour un rejet
            champs = {"valide_par": acteur.email, "valide_le": horodatage}
        if commentaire and commentaire.strip():
            champs["commentaire"] = commentaire.strip()
        return champs

    def _refus(
        self,
        acteur: Acteur,
        valeur_id: str,
        erreur: TypeErreur,
        message: str,
        valeur: Optional[ValeurIndicateur] = None,
    ) -> ResultatTransition:
        logger.warning("Transition refusee (%s) : %s", erreur.value, message)
        if self.audit and self.config.journaliser_transitions:
            self.audit.log_refus(acteur.email, "transition", erreur.value, valeur_id)
        return ResultatTransition.echec(erreur, message, valeur)

    # ============================
    # FILE DE VALIDATION
    # ============================

    def lister_a_valider(
        self,
        acteur: Acteur,
        periode_id: Optional[str] = None,
        statuts: Optional[Iterable[StatutValeur]] = None,
    ) -> list[ValeurIndicateur]:
        """Valeurs visibles par un validateur (soumises par defaut).

        Toutes les valeurs des processus affectes, restreintes au site du
        validateur s'il est rattache a un site.
        """
        if acteur.role != Role.VALIDATEUR:
            return []
        processus = self.processus_acteur(acteur)
        if not processus:
            logger.info("Aucun processus affecte a %s", acteur.email)
            return []
        return self.store.lister_valeurs(
            acteur.organisation,
            periode_id=periode_id,
            processus_codes=sorted(processus),
            site=acteur.site,
            statuts=list(statuts) if statuts is not None else [StatutValeur.SOUMISE],
        )
