"""Point d'entree CLI du pilotage energetique.

Usage :
    pilotage-energie init-db
    pilotage-energie periodes ORGANISATION ANNEE [--type month|quarter|year]
    pilotage-energie consolider ORGANISATION ANNEE [--filiere F] [--filiale FL] [--synthese]
    pilotage-energie journal [--valeur ID] [--operation OP]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pilotage_energie.config.constants import TypePeriode
from pilotage_energie.config.settings import AppConfig
from pilotage_energie.core.application import Pilotage
from pilotage_energie.core.exceptions import PilotageError
from pilotage_energie.reporting.synthese import synthetiser


def configurer_logging(verbose: bool = False) -> None:
    """Configure le logging de l'application (sur stderr, stdout porte le JSON)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)-7s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def creer_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pilotage-energie",
        description="Suivi, validation et consolidation des indicateurs energetiques.",
    )
    parser.add_argument("--db", type=Path, default=None, help="Base SQLite (defaut: PILOTAGE_DB_PATH)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Mode verbeux (debug)")
    sub = parser.add_subparsers(dest="commande", required=True)

    sub.add_parser("init-db", help="Cree le schema de la base SQLite")

    p_periodes = sub.add_parser("periodes", help="Genere les periodes de collecte d'une annee")
    p_periodes.add_argument("organisation")
    p_periodes.add_argument("annee", type=int)
    p_periodes.add_argument(
        "--type", dest="type_periode",
        choices=[t.value for t in TypePeriode],
        default=TypePeriode.MOIS.value,
        help="Type de periode (defaut: month)",
    )

    p_conso = sub.add_parser("consolider", help="Consolide les valeurs validees (JSON sur stdout)")
    p_conso.add_argument("organisation")
    p_conso.add_argument("annee", type=int)
    p_conso.add_argument("--filiere", default=None)
    p_conso.add_argument("--filiale", default=None)
    p_conso.add_argument("--synthese", action="store_true", help="Ajoute la synthese tableau de bord")

    p_journal = sub.add_parser("journal", help="Affiche le journal d'audit (JSON sur stdout)")
    p_journal.add_argument("--valeur", default=None, help="Identifiant de valeur")
    p_journal.add_argument("--operation", default=None, help="ex: transition, saisie_valeur")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Point d'entree principal."""
    parser = creer_argument_parser()
    args = parser.parse_args(argv)

    configurer_logging(args.verbose)
    logger = logging.getLogger("pilotage_energie")

    try:
        config = AppConfig()
        if args.db:
            config.base_donnees.db_path = args.db
        pilotage = Pilotage(config)

        if args.commande == "init-db":
            logger.info("Base initialisee : %s", config.base_donnees.db_path)
        elif args.commande == "periodes":
            periodes = pilotage.periodes.generer_periodes(
                args.organisation, args.annee, TypePeriode(args.type_periode)
            )
            logger.info("%d periodes enregistrees pour %s", len(periodes), args.organisation)
        elif args.commande == "consolider":
            lignes = pilotage.moteur.consolider_selection(
                args.organisation, args.annee, args.filiere, args.filiale
            )
            sortie = {"lignes": [l.to_dict() for l in lignes]}
            if args.synthese:
                sortie["synthese"] = synthetiser(lignes).to_dict()
            print(json.dumps(sortie, ensure_ascii=False, indent=2, default=str))
        elif args.commande == "journal":
            evenements = pilotage.audit.lire_journal(args.valeur, args.operation)
            print(json.dumps(evenements, ensure_ascii=False, indent=2))
        return 0

    except PilotageError as e:
        logger.error("Erreur : %s", e)
        return 1
    except Exception as e:
        logger.exception("Erreur inattendue : %s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
